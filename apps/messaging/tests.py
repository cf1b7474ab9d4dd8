"""
Tests for messaging transports, broadcast service and broadcast views
"""
import threading
from unittest.mock import MagicMock, patch

import requests
from django.core import mail
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.customers.models import Customer
from .models import BroadcastMessage, MessageDelivery, MessageSubscription
from .services import BroadcastService
from .transports import (
    DeliveryError,
    EmailNotConfigured,
    MailTransport,
    SmsGateway,
    SmsNotConfigured,
)

OWNER_TOKEN_HEADER = {'HTTP_X_OWNER_TOKEN': 'legacy-owner-token'}


class FakeSmsGateway:
    """Records sent messages; numbers in fail_for raise DeliveryError, numbers in crash_for RuntimeError"""

    is_configured = True

    def __init__(self, fail_for=(), crash_for=()):
        self.fail_for = set(fail_for)
        self.crash_for = set(crash_for)
        self.sent = []
        self.lock = threading.Lock()

    def send_sms(self, to, body):
        if to in self.fail_for:
            raise DeliveryError(f"Rejected number {to}")
        if to in self.crash_for:
            raise RuntimeError("Malformed gateway response")
        with self.lock:
            self.sent.append((to, body))
        return {'sid': 'SM123', 'status': 'queued', 'date_created': None}


def create_customer(index, subscribed=None, **overrides):
    data = {
        'first_name': f'Guest{index}',
        'last_name': 'Test',
        'phone_number': f'+49155500{index:02d}',
        'email': f'guest{index}@example.com',
        'country': 'DE',
        'discount_code': f'RC10-TEST{index:02d}',
        'is_phone_verified': True,
        'is_email_verified': True,
        'is_verified': True,
    }
    data.update(overrides)
    customer = Customer.objects.create(**data)
    if subscribed is not None:
        MessageSubscription.objects.create(customer=customer, subscribed=subscribed)
    return customer


class SmsGatewayTestCase(TestCase):
    """Test cases for SmsGateway"""

    def setUp(self):
        self.gateway = SmsGateway(
            account_sid='AC123',
            auth_token='secret',
            messaging_service_sid='MG123',
            api_url='https://sms.example.com/2010-04-01/',
        )

    def test_not_configured(self):
        gateway = SmsGateway()
        self.assertFalse(gateway.is_configured)
        with self.assertRaises(SmsNotConfigured):
            gateway.send_sms('+4915550001', 'Hello')

    @patch('apps.messaging.transports.requests.post')
    def test_send_sms_success(self, mock_post):
        mock_response = MagicMock()
        mock_response.status_code = 201
        mock_response.json.return_value = {'sid': 'SM1', 'status': 'queued', 'date_created': 'Mon, 01 Jan 2024'}
        mock_post.return_value = mock_response

        result = self.gateway.send_sms('+4915550001', 'Hello')

        self.assertEqual(result['sid'], 'SM1')
        url = mock_post.call_args[0][0]
        self.assertEqual(url, 'https://sms.example.com/2010-04-01/Accounts/AC123/Messages.json')
        kwargs = mock_post.call_args[1]
        self.assertEqual(kwargs['data']['To'], '+4915550001')
        self.assertEqual(kwargs['data']['MessagingServiceSid'], 'MG123')
        self.assertEqual(kwargs['auth'], ('AC123', 'secret'))

    @patch('apps.messaging.transports.requests.post')
    def test_send_sms_provider_error(self, mock_post):
        mock_response = MagicMock()
        mock_response.status_code = 400
        mock_response.json.return_value = {'code': 21211, 'message': "The 'To' number is not valid"}
        mock_post.return_value = mock_response

        with self.assertRaises(DeliveryError) as ctx:
            self.gateway.send_sms('+1', 'Hello')

        self.assertIn('21211', str(ctx.exception))

    @patch('apps.messaging.transports.requests.post')
    def test_send_sms_network_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('refused')

        with self.assertRaises(DeliveryError):
            self.gateway.send_sms('+4915550001', 'Hello')

    @patch('apps.messaging.transports.requests.post')
    def test_send_sms_accepted_without_json_body(self, mock_post):
        mock_response = MagicMock()
        mock_response.status_code = 201
        mock_response.text = ''
        mock_response.json.side_effect = ValueError('No JSON object could be decoded')
        mock_post.return_value = mock_response

        result = self.gateway.send_sms('+4915550001', 'Hello')

        self.assertEqual(result, {'sid': None, 'status': None, 'date_created': None})


class MailTransportTestCase(TestCase):

    def test_not_configured(self):
        with self.assertRaises(EmailNotConfigured):
            MailTransport().send_mail('guest@example.com', 'Subject', 'Body')

    def test_send_mail_with_html(self):
        MailTransport(from_email='noreply@example.com').send_mail(
            'guest@example.com', 'Subject', 'Body', html='<p>Body</p>'
        )

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].from_email, 'noreply@example.com')
        self.assertEqual(mail.outbox[0].alternatives[0][1], 'text/html')

    def test_from_settings_disabled_without_smtp_host(self):
        self.assertFalse(MailTransport.from_settings().is_configured)


class BroadcastServiceTestCase(TestCase):
    """Test cases for BroadcastService"""

    def setUp(self):
        self.gateway = FakeSmsGateway()
        self.service = BroadcastService(
            sms_gateway=self.gateway,
            mail_transport=MailTransport(from_email='noreply@example.com'),
            max_workers=4,
        )

    def test_broadcast_to_subscribers(self):
        """Only subscribed customers receive the SMS and every delivery is logged"""
        first = create_customer(1, subscribed=True)
        create_customer(2, subscribed=True)
        create_customer(3, subscribed=False)
        create_customer(4)

        message, summary = self.service.broadcast_to_subscribers('Weekend', 'Two for one on Saturday')

        self.assertEqual(summary, {'sent': 2, 'failed': 0, 'skipped': 0})
        self.assertEqual(sorted(to for to, _ in self.gateway.sent), ['+4915550001', '+4915550002'])
        self.assertEqual(message.channel, BroadcastMessage.CHANNEL_SMS)

        deliveries = MessageDelivery.objects.filter(message=message)
        self.assertEqual(deliveries.count(), 2)
        delivery = deliveries.get(customer=first)
        self.assertEqual(delivery.status, MessageDelivery.STATUS_SENT)
        self.assertEqual(delivery.subscription, first.subscription)
        self.assertIsNotNone(delivery.sent_at)

    def test_broadcast_records_failures(self):
        """A failing recipient does not stop the others"""
        create_customer(1, subscribed=True)
        create_customer(2, subscribed=True)
        self.gateway.fail_for = {'+4915550002'}

        message, summary = self.service.broadcast_to_subscribers('Weekend', 'Two for one')

        self.assertEqual(summary, {'sent': 1, 'failed': 1, 'skipped': 0})
        failed = MessageDelivery.objects.get(message=message, status=MessageDelivery.STATUS_FAILED)
        self.assertEqual(failed.recipient, '+4915550002')
        self.assertIn('Rejected number', failed.error_message)
        self.assertIsNone(failed.sent_at)

    def test_broadcast_records_unexpected_errors(self):
        """Errors other than DeliveryError are logged as failed deliveries"""
        first = create_customer(1)
        second = create_customer(2)
        third = create_customer(3)
        self.gateway.crash_for = {'+4915550002'}

        message, summary = self.service.broadcast_to_customers(
            BroadcastMessage.CHANNEL_SMS,
            'Hello',
            'Personal offer',
            [first.id, second.id, third.id]
        )

        self.assertEqual(summary, {'sent': 2, 'failed': 1, 'skipped': 0})
        self.assertEqual(MessageDelivery.objects.filter(message=message).count(), 3)
        failed = MessageDelivery.objects.get(message=message, status=MessageDelivery.STATUS_FAILED)
        self.assertEqual(failed.customer, second)
        self.assertIn('Malformed gateway response', failed.error_message)

    def test_broadcast_without_recipients(self):
        """Nothing is stored when there is nobody to send to"""
        message, summary = self.service.broadcast_to_subscribers('Weekend', 'Two for one')

        self.assertIsNone(message)
        self.assertEqual(summary, {'sent': 0, 'failed': 0, 'skipped': 0})
        self.assertEqual(BroadcastMessage.objects.count(), 0)

    def test_broadcast_not_configured_stores_nothing(self):
        create_customer(1, subscribed=True)
        service = BroadcastService(sms_gateway=SmsGateway(), mail_transport=MailTransport())

        with self.assertRaises(SmsNotConfigured):
            service.broadcast_to_subscribers('Weekend', 'Two for one')
        with self.assertRaises(EmailNotConfigured):
            service.broadcast_email_to_consenting('Weekend', 'Two for one')

        self.assertEqual(BroadcastMessage.objects.count(), 0)

    def test_broadcast_to_customers_sms(self):
        """Targeted SMS ignores unknown ids and logs customers without subscription"""
        first = create_customer(1)
        create_customer(2)

        message, summary = self.service.broadcast_to_customers(
            BroadcastMessage.CHANNEL_SMS,
            'Hello',
            'Personal offer',
            [first.id, '00000000-0000-0000-0000-000000000000']
        )

        self.assertEqual(summary['sent'], 1)
        self.assertEqual(self.gateway.sent, [('+4915550001', 'Personal offer')])
        delivery = MessageDelivery.objects.get(message=message)
        self.assertEqual(delivery.customer, first)
        self.assertIsNone(delivery.subscription)

    def test_broadcast_to_customers_email_skips_missing_address(self):
        first = create_customer(1)
        second = create_customer(2, email=None)

        message, summary = self.service.broadcast_to_customers(
            BroadcastMessage.CHANNEL_EMAIL,
            'Hello',
            'Personal offer',
            [first.id, second.id]
        )

        self.assertEqual(summary, {'sent': 1, 'failed': 0, 'skipped': 1})
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['guest1@example.com'])
        self.assertEqual(mail.outbox[0].subject, 'Hello')
        self.assertEqual(MessageDelivery.objects.filter(message=message).count(), 1)

    def test_broadcast_email_to_consenting(self):
        """Only verified customers with email consent are mailed"""
        create_customer(1, consent_email=True)
        create_customer(2, consent_email=False)
        create_customer(3, consent_email=True, is_verified=False)
        create_customer(4, consent_email=True, email='')

        message, summary = self.service.broadcast_email_to_consenting('News', 'New menu')

        self.assertEqual(summary['sent'], 1)
        self.assertEqual([m.to for m in mail.outbox], [['guest1@example.com']])
        self.assertEqual(message.channel, BroadcastMessage.CHANNEL_EMAIL)


class BroadcastViewTestCase(APITestCase):
    """Test cases for the broadcast endpoints"""

    def setUp(self):
        self.gateway = FakeSmsGateway()
        self.customer = create_customer(1, subscribed=True, consent_email=True)

    def post(self, name, data, gateway=None, transport=None, **extra):
        gateway = gateway or self.gateway
        transport = transport or MailTransport(from_email='noreply@example.com')
        with patch('apps.messaging.views.get_sms_gateway', return_value=gateway), \
                patch('apps.messaging.views.get_mail_transport', return_value=transport):
            return self.client.post(reverse(f'messaging:{name}'), data, **extra)

    def test_requires_authentication(self):
        response = self.post('broadcast', {'title': 'Hi', 'body': 'Hello'})

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(self.gateway.sent, [])

    def test_subscriber_broadcast(self):
        response = self.post('broadcast', {'title': 'Hi', 'body': 'Hello'}, **OWNER_TOKEN_HEADER)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Broadcast complete')
        self.assertEqual(response.data['summary']['sent'], 1)

    def test_subscriber_broadcast_no_recipients(self):
        self.customer.subscription.subscribed = False
        self.customer.subscription.save()

        response = self.post('broadcast', {'title': 'Hi', 'body': 'Hello'}, **OWNER_TOKEN_HEADER)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'No recipients for this broadcast')

    def test_broadcast_validation(self):
        response = self.post('broadcast', {'title': '', 'body': 'Hello'}, **OWNER_TOKEN_HEADER)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('title', response.data)

    def test_sms_not_configured(self):
        response = self.post('broadcast', {'title': 'Hi', 'body': 'Hello'}, gateway=SmsGateway(), **OWNER_TOKEN_HEADER)

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'SMS gateway is not configured')
        self.assertEqual(BroadcastMessage.objects.count(), 0)

    def test_targeted_sms(self):
        create_customer(2)

        response = self.post(
            'owner-broadcast-sms',
            {'title': 'Hi', 'body': 'Hello', 'recipientIds': [str(self.customer.id)]},
            **OWNER_TOKEN_HEADER
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.gateway.sent, [('+4915550001', 'Hello')])

    def test_targeted_sms_with_unexpected_gateway_error(self):
        second = create_customer(2)
        gateway = FakeSmsGateway(crash_for={'+4915550002'})

        response = self.post(
            'owner-broadcast-sms',
            {'title': 'Hi', 'body': 'Hello', 'recipientIds': [str(self.customer.id), str(second.id)]},
            gateway=gateway,
            **OWNER_TOKEN_HEADER
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(MessageDelivery.objects.count(), 2)
        self.assertEqual(MessageDelivery.objects.filter(status=MessageDelivery.STATUS_FAILED).count(), 1)

    def test_targeted_requires_recipients(self):
        response = self.post(
            'owner-broadcast-sms',
            {'title': 'Hi', 'body': 'Hello', 'recipientIds': []},
            **OWNER_TOKEN_HEADER
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('recipientIds', response.data)

    def test_targeted_email(self):
        response = self.post(
            'owner-broadcast-email',
            {'title': 'Hi', 'body': 'Hello', 'recipientIds': [str(self.customer.id)]},
            **OWNER_TOKEN_HEADER
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(
            BroadcastMessage.objects.get().channel,
            BroadcastMessage.CHANNEL_EMAIL
        )

    def test_consent_email_not_configured(self):
        response = self.post(
            'admin-broadcast-email',
            {'title': 'Hi', 'body': 'Hello'},
            transport=MailTransport(),
            **OWNER_TOKEN_HEADER
        )

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Mail transport is not configured')

    def test_consent_email(self):
        response = self.post('admin-broadcast-email', {'title': 'Hi', 'body': 'Hello'}, **OWNER_TOKEN_HEADER)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['sent'], 1)
        self.assertEqual(mail.outbox[0].to, ['guest1@example.com'])
