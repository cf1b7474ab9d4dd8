import logging
from concurrent.futures import ThreadPoolExecutor

from django.conf import settings
from django.utils import timezone

from apps.customers.models import Customer
from .models import BroadcastMessage, MessageDelivery, MessageSubscription
from .transports import DeliveryError, EmailNotConfigured, SmsNotConfigured

logger = logging.getLogger(__name__)


class BroadcastService:
    """
    Service for fanning a message out to many customers

    Sends run concurrently on a thread pool; every database write happens on
    the calling thread after the outcomes are collected.
    """

    def __init__(self, sms_gateway=None, mail_transport=None, max_workers=None):
        self.sms_gateway = sms_gateway
        self.mail_transport = mail_transport
        self.max_workers = max_workers or settings.BROADCAST_MAX_WORKERS

    @staticmethod
    def empty_summary():
        return {'sent': 0, 'failed': 0, 'skipped': 0}

    def _ensure_configured(self, channel):
        if channel == BroadcastMessage.CHANNEL_SMS:
            if self.sms_gateway is None or not self.sms_gateway.is_configured:
                raise SmsNotConfigured()
        elif self.mail_transport is None or not self.mail_transport.is_configured:
            raise EmailNotConfigured()

    def _send_one(self, channel, recipient, title, body):
        """
        Runs on a worker thread; returns (status, error_message)
        """
        try:
            if channel == BroadcastMessage.CHANNEL_SMS:
                self.sms_gateway.send_sms(recipient, body)
            else:
                self.mail_transport.send_mail(recipient, title, body, html=f"<p>{body}</p>")
        except DeliveryError as e:
            return MessageDelivery.STATUS_FAILED, str(e)
        except Exception as e:
            logger.exception("Unexpected error sending %s to %s", channel, recipient)
            return MessageDelivery.STATUS_FAILED, f"Unexpected error: {e}"
        return MessageDelivery.STATUS_SENT, None

    def _broadcast(self, channel, title, body, targets):
        """
        targets: iterable of (customer, subscription) pairs
        """
        self._ensure_configured(channel)

        summary = self.empty_summary()
        recipients = []

        for customer, subscription in targets:
            address = customer.phone_number if channel == BroadcastMessage.CHANNEL_SMS else customer.email
            if not address:
                summary['skipped'] += 1
                continue
            recipients.append((customer, subscription, address))

        if not recipients:
            logger.info("Broadcast (%s) has no deliverable recipients", channel)
            return None, summary

        message = BroadcastMessage.objects.create(title=title, body=body, channel=channel)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(recipients))) as executor:
            outcomes = list(executor.map(
                lambda target: self._send_one(channel, target[2], title, body),
                recipients
            ))

        deliveries = []
        for (customer, subscription, address), (delivery_status, error_message) in zip(recipients, outcomes):
            sent = delivery_status == MessageDelivery.STATUS_SENT
            summary['sent' if sent else 'failed'] += 1
            deliveries.append(MessageDelivery(
                message=message,
                customer=customer,
                subscription=subscription,
                recipient=address,
                status=delivery_status,
                error_message=error_message,
                sent_at=timezone.now() if sent else None,
            ))

        MessageDelivery.objects.bulk_create(deliveries)

        logger.info(
            "Broadcast %s (%s): sent=%s failed=%s skipped=%s",
            message.id, channel, summary['sent'], summary['failed'], summary['skipped']
        )
        return message, summary

    def broadcast_to_subscribers(self, title, body):
        """
        SMS to every subscribed customer
        """
        subscriptions = MessageSubscription.objects.filter(subscribed=True).select_related('customer')
        targets = [(subscription.customer, subscription) for subscription in subscriptions]
        return self._broadcast(BroadcastMessage.CHANNEL_SMS, title, body, targets)

    def broadcast_to_customers(self, channel, title, body, customer_ids):
        """
        Targeted broadcast to the given customers; unknown ids are ignored
        """
        customers = Customer.objects.filter(pk__in=customer_ids).select_related('subscription')
        targets = [
            (customer, getattr(customer, 'subscription', None))
            for customer in customers
        ]
        return self._broadcast(channel, title, body, targets)

    def broadcast_email_to_consenting(self, title, body):
        """
        Email to every verified customer who consented to email
        """
        customers = Customer.objects.filter(
            is_verified=True,
            consent_email=True,
            email__isnull=False,
        ).exclude(email='').select_related('subscription')
        targets = [
            (customer, getattr(customer, 'subscription', None))
            for customer in customers
        ]
        return self._broadcast(BroadcastMessage.CHANNEL_EMAIL, title, body, targets)
