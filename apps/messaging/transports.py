import logging
import smtplib

import requests
from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection

logger = logging.getLogger(__name__)


class TransportNotConfigured(Exception):
    """Raised when a channel is used before its credentials are set"""
    message = 'Transport is not configured'

    def __init__(self, message=None):
        super().__init__(message or self.message)


class SmsNotConfigured(TransportNotConfigured):
    message = 'SMS gateway is not configured'


class EmailNotConfigured(TransportNotConfigured):
    message = 'Mail transport is not configured'


class DeliveryError(Exception):
    """Raised when the provider rejects or fails to accept a message"""


class SmsGateway:
    """
    Client for a Twilio-compatible Messages API.

    Stateless: every call builds its own request, so one instance can be
    shared between threads during a broadcast.
    """

    def __init__(self, account_sid=None, auth_token=None, messaging_service_sid=None,
                 api_url='https://api.twilio.com/2010-04-01', timeout=10):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.messaging_service_sid = messaging_service_sid
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout

    @classmethod
    def from_settings(cls):
        return cls(
            account_sid=settings.SMS_ACCOUNT_SID,
            auth_token=settings.SMS_AUTH_TOKEN,
            messaging_service_sid=settings.SMS_MESSAGING_SERVICE_SID,
            api_url=settings.SMS_API_URL,
            timeout=settings.SMS_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self):
        return bool(self.account_sid and self.auth_token and self.messaging_service_sid)

    def send_sms(self, to, body):
        """
        Send a single SMS.
        Returns a dict with the provider message id and creation date.
        """
        if not self.is_configured:
            raise SmsNotConfigured()

        url = f"{self.api_url}/Accounts/{self.account_sid}/Messages.json"

        data = {
            'To': to,
            'MessagingServiceSid': self.messaging_service_sid,
            'Body': body,
        }

        try:
            response = requests.post(
                url,
                data=data,
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise DeliveryError(f"Failed to reach SMS gateway: {e}") from e

        # Messages API answers 201 Created on success
        if response.status_code not in (200, 201):
            error_msg = f"SMS gateway returned status {response.status_code}"
            try:
                error_data = response.json()
                error_msg = f"SMS gateway error (code {error_data.get('code')}): {error_data.get('message', 'Unknown error')}"
            except ValueError:
                error_msg += f": {response.text}"
            raise DeliveryError(error_msg)

        # Accepted even when the provider sends no JSON body
        try:
            result = response.json()
        except ValueError:
            logger.warning("SMS gateway accepted message to %s without a JSON body", to)
            result = {}

        return {
            'sid': result.get('sid'),
            'status': result.get('status'),
            'date_created': result.get('date_created'),
        }


class MailTransport:
    """
    Thin wrapper over Django's mail API with an explicit "configured" state.
    """

    def __init__(self, from_email=None, connection=None):
        self.from_email = from_email
        self.connection = connection

    @classmethod
    def from_settings(cls):
        from_email = settings.DEFAULT_FROM_EMAIL if settings.MAIL_ENABLED else None
        return cls(from_email=from_email)

    @property
    def is_configured(self):
        return bool(self.from_email)

    def send_mail(self, to, subject, text, html=None):
        if not self.is_configured:
            raise EmailNotConfigured()

        message = EmailMultiAlternatives(
            subject=subject,
            body=text,
            from_email=self.from_email,
            to=[to],
            connection=self.connection or get_connection(),
        )
        if html:
            message.attach_alternative(html, 'text/html')

        try:
            message.send(fail_silently=False)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"Failed to send email to {to}: {e}") from e


def get_sms_gateway():
    return SmsGateway.from_settings()


def get_mail_transport():
    return MailTransport.from_settings()
