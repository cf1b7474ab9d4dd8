"""
Tests for customers app views and services
"""
import re
from datetime import timedelta
from io import StringIO
from unittest.mock import MagicMock, patch

from django.apps import apps
from django.core import mail
from django.core.management import call_command
from django.db import OperationalError
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.messaging.models import MessageSubscription
from apps.messaging.transports import DeliveryError, MailTransport, SmsGateway
from .models import Customer, FormDraft
from .scheduler import cleanup_form_drafts_job, start_scheduler
from .services import (
    CustomerExportService,
    DiscountCodeGenerationError,
    DiscountCodeService,
    FormDraftService,
    RegistrationService,
    VerificationService,
)

OWNER_TOKEN_HEADER = {'HTTP_X_OWNER_TOKEN': 'legacy-owner-token'}


def create_customer(**overrides):
    data = {
        'first_name': 'Anna',
        'last_name': 'Schmidt',
        'phone_number': '+4915550001',
        'email': 'anna@example.com',
        'country': 'DE',
        'discount_code': 'RC10-ABC123',
    }
    data.update(overrides)
    return Customer.objects.create(**data)


def registration_payload(**overrides):
    data = {
        'firstName': 'Anna',
        'lastName': 'Schmidt',
        'country': 'de',
        'phoneNumber': '+4915550001',
        'email': 'anna@example.com',
        'birthDate': '1990-05-17',
        'city': 'Berlin',
        'street': 'Hauptstrasse',
        'houseNumber': '12',
        'postalCode': '10115',
        'preferredFood': 'Sushi',
        'consentEmail': True,
        'consentSms': True,
    }
    data.update(overrides)
    return data


def fake_sms_gateway():
    gateway = MagicMock(spec=SmsGateway)
    gateway.is_configured = True
    return gateway


def locmem_mail_transport():
    return MailTransport(from_email='noreply@example.com')


class DiscountCodeServiceTestCase(TestCase):
    """Test cases for DiscountCodeService"""

    def test_generate_discount_code_format(self):
        """Codes are the prefix plus 6 uppercase base-36 characters"""
        code = DiscountCodeService.generate_discount_code()
        self.assertRegex(code, r'^RC10-[A-Z0-9]{6}$')

    def test_generate_unique_discount_code_skips_taken_codes(self):
        """A colliding draw is retried"""
        create_customer(discount_code='RC10-TAKEN1')

        with patch.object(
            DiscountCodeService,
            'generate_discount_code',
            side_effect=['RC10-TAKEN1', 'RC10-FREE01']
        ):
            code = DiscountCodeService.generate_unique_discount_code()

        self.assertEqual(code, 'RC10-FREE01')

    def test_generate_unique_discount_code_gives_up(self):
        """Generation fails after the configured number of attempts"""
        create_customer(discount_code='RC10-TAKEN1')

        with patch.object(DiscountCodeService, 'generate_discount_code', return_value='RC10-TAKEN1') as mock_generate:
            with self.assertRaises(DiscountCodeGenerationError):
                DiscountCodeService.generate_unique_discount_code()

        self.assertEqual(mock_generate.call_count, 5)


class RegistrationServiceTestCase(TestCase):
    """Test cases for RegistrationService"""

    def test_register_new_customer_is_unverified(self):
        """A new phone number creates an unverified customer with a code"""
        customer, registration_status = RegistrationService.register({
            'first_name': 'Anna',
            'last_name': 'Schmidt',
            'country': 'DE',
            'phone_number': '+4915550001',
        })

        self.assertEqual(registration_status, RegistrationService.STATUS_VERIFICATION_REQUIRED)
        self.assertFalse(customer.is_verified)
        self.assertTrue(customer.discount_code.startswith('RC10-'))

    def test_register_deletes_draft(self):
        """The draft used to fill the form is removed on success"""
        draft = FormDraft.objects.create(first_name='Anna')

        RegistrationService.register({
            'first_name': 'Anna',
            'last_name': 'Schmidt',
            'country': 'DE',
            'phone_number': '+4915550001',
            'draft_id': draft.id,
        })

        self.assertFalse(FormDraft.objects.filter(pk=draft.id).exists())

    def test_register_concurrent_duplicate_returns_existing(self):
        """A unique-constraint violation on insert is answered with the stored customer"""
        existing = create_customer(phone_number='+4915550009')

        # The first lookup misses as if another request inserted in between
        with patch.object(RegistrationService, 'find_by_phone', side_effect=[None, existing]):
            customer, registration_status = RegistrationService.register({
                'first_name': 'Other',
                'last_name': 'Person',
                'country': 'DE',
                'phone_number': '+4915550009',
            })

        self.assertEqual(customer, existing)
        self.assertEqual(registration_status, RegistrationService.STATUS_PENDING)
        self.assertEqual(Customer.objects.count(), 1)


class RegisterViewTestCase(APITestCase):
    """Test cases for RegisterView"""

    def setUp(self):
        self.url = reverse('customers:register')

    def test_register_new_customer(self):
        """New registrations answer 202 without revealing the discount code"""
        response = self.client.post(self.url, registration_payload())

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(response.data['status'], 'verification_required')
        self.assertNotIn('discountCode', response.data)

        customer = Customer.objects.get(pk=response.data['customerId'])
        self.assertFalse(customer.is_verified)
        self.assertEqual(customer.country, 'DE')
        self.assertEqual(str(customer.birth_date), '1990-05-17')
        self.assertTrue(customer.consent_sms)
        self.assertIsNone(customer.consent_given_at)
        self.assertIsNone(customer.phone_verification_code)

    def test_register_existing_unverified(self):
        """A known unverified phone number returns the pending customer id"""
        customer = create_customer()

        response = self.client.post(self.url, registration_payload())

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'pending_verification')
        self.assertEqual(response.data['customerId'], str(customer.id))
        self.assertNotIn('discountCode', response.data)
        self.assertEqual(Customer.objects.count(), 1)

    def test_register_existing_verified(self):
        """A known verified phone number returns the discount code"""
        create_customer(is_phone_verified=True, is_email_verified=True, is_verified=True)

        response = self.client.post(self.url, registration_payload())

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'verified')
        self.assertEqual(response.data['discountCode'], 'RC10-ABC123')

    def test_register_without_email(self):
        """Email is optional; a blank value is stored as null"""
        response = self.client.post(self.url, registration_payload(email=''))

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        customer = Customer.objects.get(pk=response.data['customerId'])
        self.assertIsNone(customer.email)

    def test_register_invalid_country(self):
        """Country must be exactly two letters"""
        response = self.client.post(self.url, registration_payload(country='DEU'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('country', response.data)

        response = self.client.post(self.url, registration_payload(country='1A'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_invalid_phone_and_email(self):
        """Short phone numbers and malformed emails are rejected"""
        response = self.client.post(self.url, registration_payload(phoneNumber='123', email='not-an-email'))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phoneNumber', response.data)
        self.assertIn('email', response.data)
        self.assertEqual(Customer.objects.count(), 0)

    def test_register_discount_code_exhausted(self):
        """Code generation failure is reported as a server error"""
        with patch(
            'apps.customers.services.DiscountCodeService.generate_unique_discount_code',
            side_effect=DiscountCodeGenerationError('Could not generate a unique discount code')
        ):
            response = self.client.post(self.url, registration_payload())

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertIn('error', response.data)
        self.assertEqual(Customer.objects.count(), 0)

    def test_register_ignores_invalid_owner_token(self):
        """A stray owner token header does not block the public form"""
        response = self.client.post(self.url, registration_payload(), HTTP_X_OWNER_TOKEN='wrong')

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)


class SendVerificationCodeViewTestCase(APITestCase):
    """Test cases for SendVerificationCodeView"""

    def setUp(self):
        self.url = reverse('customers:verify-send')
        self.customer = create_customer()
        self.gateway = fake_sms_gateway()

    def post(self, data):
        with patch('apps.customers.views.get_sms_gateway', return_value=self.gateway), \
                patch('apps.customers.views.get_mail_transport', return_value=locmem_mail_transport()):
            return self.client.post(self.url, data)

    def test_send_phone_code(self):
        """A 4-digit code is stored and sent by SMS but never returned"""
        response = self.post({'customerId': str(self.customer.id), 'type': 'phone'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['alreadyVerified'])

        self.customer.refresh_from_db()
        code = self.customer.phone_verification_code
        self.assertRegex(code, r'^[1-9]\d{3}$')
        self.assertIsNotNone(self.customer.phone_code_sent_at)
        self.assertNotIn(code, str(response.data))

        self.gateway.send_sms.assert_called_once()
        to, body = self.gateway.send_sms.call_args[0]
        self.assertEqual(to, '+4915550001')
        self.assertIn(code, body)

    def test_send_email_code(self):
        """Email codes go through the mail transport"""
        response = self.post({'customerId': str(self.customer.id), 'type': 'email'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['anna@example.com'])
        self.assertIn(self.customer.email_verification_code, mail.outbox[0].body)

    def test_resend_overwrites_code(self):
        """A new send replaces the outstanding code"""
        with patch.object(VerificationService, 'generate_verification_code', side_effect=['1111', '2222']):
            self.post({'customerId': str(self.customer.id), 'type': 'phone'})
            self.post({'customerId': str(self.customer.id), 'type': 'phone'})

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.phone_verification_code, '2222')

    def test_send_unknown_customer(self):
        response = self.post({'customerId': '00000000-0000-0000-0000-000000000000', 'type': 'phone'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_send_email_without_address(self):
        """Email verification needs an email on file"""
        customer = create_customer(phone_number='+4915550002', email=None, discount_code='RC10-XYZ789')

        response = self.post({'customerId': str(customer.id), 'type': 'email'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(len(mail.outbox), 0)

    def test_send_already_verified(self):
        """A verified channel is acknowledged without sending"""
        Customer.objects.filter(pk=self.customer.pk).update(is_phone_verified=True)

        response = self.post({'customerId': str(self.customer.id), 'type': 'phone'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['alreadyVerified'])
        self.gateway.send_sms.assert_not_called()

    def test_send_invalid_type(self):
        response = self.post({'customerId': str(self.customer.id), 'type': 'fax'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_send_sms_not_configured(self):
        """An unconfigured gateway answers 500 with a fixed message"""
        self.gateway = SmsGateway()

        response = self.post({'customerId': str(self.customer.id), 'type': 'phone'})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'SMS gateway is not configured')

    def test_send_email_not_configured(self):
        with patch('apps.customers.views.get_sms_gateway', return_value=self.gateway), \
                patch('apps.customers.views.get_mail_transport', return_value=MailTransport()):
            response = self.client.post(self.url, {'customerId': str(self.customer.id), 'type': 'email'})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Mail transport is not configured')

    def test_send_delivery_failure(self):
        """Provider errors are reported as a server error"""
        self.gateway.send_sms.side_effect = DeliveryError('gateway down')

        response = self.post({'customerId': str(self.customer.id), 'type': 'phone'})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertIsNone(response.data['detail'])

    def test_send_unexpected_gateway_error(self):
        """Any other gateway failure still answers with a JSON error"""
        self.gateway.send_sms.side_effect = RuntimeError('unexpected payload')

        response = self.post({'customerId': str(self.customer.id), 'type': 'phone'})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Failed to send verification code. Please try again later.')

    @patch('apps.messaging.transports.requests.post')
    def test_send_accepted_without_json_body(self, mock_post):
        """A 201 with an empty body counts as sent"""
        mock_post.return_value = MagicMock(status_code=201, text='')
        mock_post.return_value.json.side_effect = ValueError('No JSON object could be decoded')
        self.gateway = SmsGateway(account_sid='AC123', auth_token='secret', messaging_service_sid='MG123')

        response = self.post({'customerId': str(self.customer.id), 'type': 'phone'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        mock_post.assert_called_once()


class ConfirmVerificationCodeViewTestCase(APITestCase):
    """Test cases for ConfirmVerificationCodeView"""

    def setUp(self):
        self.url = reverse('customers:verify-confirm')
        self.customer = create_customer(
            phone_verification_code='1234',
            email_verification_code='5678',
            consent_sms=True,
        )

    def confirm(self, channel, code, customer=None):
        customer = customer or self.customer
        return self.client.post(self.url, {
            'customerId': str(customer.id),
            'type': channel,
            'code': code,
        })

    def test_confirm_wrong_code(self):
        response = self.confirm('phone', '0000')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid or expired verification code')
        self.customer.refresh_from_db()
        self.assertFalse(self.customer.is_phone_verified)
        self.assertEqual(self.customer.phone_verification_code, '1234')

    def test_confirm_without_sent_code(self):
        customer = create_customer(phone_number='+4915550002', discount_code='RC10-XYZ789')
        response = self.confirm('phone', '1234', customer=customer)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_confirm_malformed_code(self):
        self.assertEqual(self.confirm('phone', '12a4').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.confirm('phone', '12345').status_code, status.HTTP_400_BAD_REQUEST)

    def test_confirm_unknown_customer(self):
        response = self.client.post(self.url, {
            'customerId': '00000000-0000-0000-0000-000000000000',
            'type': 'phone',
            'code': '1234',
        })
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_confirm_phone_only_is_not_fully_verified(self):
        """One channel is not enough to reveal the discount code"""
        response = self.confirm('phone', '1234')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['isPhoneVerified'])
        self.assertFalse(response.data['isEmailVerified'])
        self.assertFalse(response.data['isFullyVerified'])
        self.assertNotIn('discountCode', response.data)

        self.customer.refresh_from_db()
        self.assertIsNone(self.customer.phone_verification_code)
        self.assertFalse(self.customer.is_verified)

    def test_confirm_both_channels(self):
        """Both channels verify the customer, stamp consent and subscribe"""
        self.confirm('phone', '1234')
        response = self.confirm('email', '5678')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['isFullyVerified'])
        self.assertEqual(response.data['discountCode'], 'RC10-ABC123')

        self.customer.refresh_from_db()
        self.assertTrue(self.customer.is_verified)
        self.assertIsNotNone(self.customer.consent_given_at)

        subscription = MessageSubscription.objects.get(customer=self.customer)
        self.assertTrue(subscription.subscribed)

    def test_confirm_without_consent_leaves_consent_unstamped(self):
        customer = create_customer(
            phone_number='+4915550002',
            discount_code='RC10-XYZ789',
            is_phone_verified=True,
            email_verification_code='4321',
        )

        response = self.confirm('email', '4321', customer=customer)

        self.assertTrue(response.data['isFullyVerified'])
        customer.refresh_from_db()
        self.assertIsNone(customer.consent_given_at)
        self.assertFalse(MessageSubscription.objects.get(customer=customer).subscribed)

    def test_confirm_already_verified(self):
        """Re-confirming a verified channel is acknowledged"""
        self.confirm('phone', '1234')
        response = self.confirm('phone', '1234')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['isPhoneVerified'])
        self.assertIn('already verified', response.data['message'])
        self.assertNotIn('discountCode', response.data)

    def test_discount_code_revealed_once(self):
        """Only the confirm that completes verification carries the code"""
        self.confirm('phone', '1234')
        response = self.confirm('email', '5678')
        self.assertEqual(response.data['discountCode'], 'RC10-ABC123')

        for channel, code in (('email', '0000'), ('phone', '1234'), ('email', '5678')):
            response = self.confirm(channel, code)

            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertTrue(response.data['isFullyVerified'])
            self.assertNotIn('discountCode', response.data)

    @override_settings(VERIFICATION_CODE_EXPIRY_MINUTES=5)
    def test_confirm_expired_code(self):
        """With expiry enabled, stale codes are rejected"""
        Customer.objects.filter(pk=self.customer.pk).update(
            phone_code_sent_at=timezone.now() - timedelta(minutes=10)
        )
        self.assertEqual(self.confirm('phone', '1234').status_code, status.HTTP_400_BAD_REQUEST)

        Customer.objects.filter(pk=self.customer.pk).update(
            phone_code_sent_at=timezone.now() - timedelta(minutes=1)
        )
        self.assertEqual(self.confirm('phone', '1234').status_code, status.HTTP_200_OK)

    def test_full_flow_with_sent_codes(self):
        """Register, send and confirm both channels end to end"""
        gateway = fake_sms_gateway()
        response = self.client.post(
            reverse('customers:register'),
            registration_payload(phoneNumber='+15551234567', email='guest@example.com')
        )
        customer_id = response.data['customerId']

        with patch('apps.customers.views.get_sms_gateway', return_value=gateway), \
                patch('apps.customers.views.get_mail_transport', return_value=locmem_mail_transport()):
            self.client.post(reverse('customers:verify-send'), {'customerId': customer_id, 'type': 'phone'})
            self.client.post(reverse('customers:verify-send'), {'customerId': customer_id, 'type': 'email'})

        customer = Customer.objects.get(pk=customer_id)
        self.client.post(self.url, {'customerId': customer_id, 'type': 'phone', 'code': customer.phone_verification_code})
        response = self.client.post(self.url, {'customerId': customer_id, 'type': 'email', 'code': customer.email_verification_code})

        self.assertTrue(response.data['isFullyVerified'])
        self.assertRegex(response.data['discountCode'], r'^RC10-[A-Z0-9]{6}$')


class VerificationServiceTestCase(TestCase):
    """Test cases for VerificationService"""

    def setUp(self):
        self.service = VerificationService(fake_sms_gateway(), locmem_mail_transport())

    def test_generate_verification_code_range(self):
        for _ in range(50):
            code = VerificationService.generate_verification_code()
            self.assertTrue(1000 <= int(code) <= 9999)
            self.assertEqual(len(code), 4)

    def test_confirm_loses_race(self):
        """A confirm that finds the flag already flipped reports already verified"""
        customer = create_customer(phone_verification_code='1234')
        stale = Customer.objects.get(pk=customer.pk)
        Customer.objects.filter(pk=customer.pk).update(is_phone_verified=True, phone_verification_code=None)

        with patch.object(VerificationService, 'get_customer', return_value=stale):
            result, confirmed, became_verified = self.service.confirm_code(customer.pk, 'phone', '1234')

        self.assertFalse(confirmed)
        self.assertFalse(became_verified)
        self.assertTrue(result.is_phone_verified)

    def test_became_verified_only_on_transition(self):
        customer = create_customer(is_email_verified=True, phone_verification_code='1234')

        _, confirmed, became_verified = self.service.confirm_code(customer.pk, 'phone', '1234')
        self.assertTrue(confirmed)
        self.assertTrue(became_verified)

        _, confirmed, became_verified = self.service.confirm_code(customer.pk, 'phone', '1234')
        self.assertFalse(confirmed)
        self.assertFalse(became_verified)

    def test_single_channel_confirm_is_not_a_transition(self):
        customer = create_customer(phone_verification_code='1234')

        _, confirmed, became_verified = self.service.confirm_code(customer.pk, 'phone', '1234')

        self.assertTrue(confirmed)
        self.assertFalse(became_verified)

    def test_subscription_created_once(self):
        """Only the call that flips is_verified creates the subscription"""
        customer = create_customer(is_email_verified=True, phone_verification_code='1234')

        self.service.confirm_code(customer.pk, 'phone', '1234')
        self.service.confirm_code(customer.pk, 'phone', '1234')

        self.assertEqual(MessageSubscription.objects.filter(customer=customer).count(), 1)


class FormDraftTestCase(APITestCase):
    """Test cases for form drafts"""

    def setUp(self):
        self.url = reverse('customers:form-draft')

    def test_create_draft(self):
        response = self.client.post(self.url, {'firstName': 'Anna', 'phoneNumber': '+49'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        draft = FormDraft.objects.get(pk=response.data['draftId'])
        self.assertEqual(draft.first_name, 'Anna')
        self.assertIsNone(draft.last_name)

    def test_update_draft(self):
        draft = FormDraft.objects.create(first_name='Anna')

        response = self.client.post(self.url, {'draftId': str(draft.id), 'firstName': 'Anne', 'city': 'Berlin'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['draftId'], str(draft.id))
        draft.refresh_from_db()
        self.assertEqual(draft.first_name, 'Anne')
        self.assertEqual(draft.city, 'Berlin')

    def test_update_unknown_draft(self):
        response = self.client.post(self.url, {'draftId': '00000000-0000-0000-0000-000000000000', 'firstName': 'Anna'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_draft(self):
        draft = FormDraft.objects.create(first_name='Anna')

        response = self.client.delete(reverse('customers:form-draft-detail', args=[draft.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(FormDraft.objects.exists())

    def test_delete_missing_draft(self):
        """Deleting a draft that no longer exists succeeds"""
        response = self.client.delete(
            reverse('customers:form-draft-detail', args=['00000000-0000-0000-0000-000000000000'])
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_cleanup_stale_drafts(self):
        """Drafts untouched for more than the TTL are removed"""
        stale = FormDraft.objects.create(first_name='Old')
        fresh = FormDraft.objects.create(first_name='New')
        FormDraft.objects.filter(pk=stale.pk).update(updated_at=timezone.now() - timedelta(minutes=61))

        deleted_count = FormDraftService.cleanup_stale_drafts()

        self.assertEqual(deleted_count, 1)
        self.assertFalse(FormDraft.objects.filter(pk=stale.pk).exists())
        self.assertTrue(FormDraft.objects.filter(pk=fresh.pk).exists())

    def test_cleanup_command(self):
        stale = FormDraft.objects.create(first_name='Old')
        FormDraft.objects.filter(pk=stale.pk).update(updated_at=timezone.now() - timedelta(minutes=61))

        out = StringIO()
        call_command('cleanup_form_drafts', stdout=out)

        self.assertIn('Deleted 1 stale form drafts', out.getvalue())
        self.assertFalse(FormDraft.objects.exists())


class SchedulerTestCase(TestCase):
    """Test cases for the draft cleanup scheduler"""

    @patch('apps.customers.scheduler.DjangoJobStore')
    @patch('apps.customers.scheduler.BackgroundScheduler')
    def test_start_scheduler_registers_interval_job(self, mock_scheduler_class, mock_job_store):
        scheduler = start_scheduler()

        self.assertIs(scheduler, mock_scheduler_class.return_value)
        scheduler.add_job.assert_called_once()
        args, kwargs = scheduler.add_job.call_args
        self.assertIs(args[0], cleanup_form_drafts_job)
        self.assertEqual(kwargs['id'], 'cleanup_form_drafts_job')
        self.assertEqual(kwargs['trigger'].interval, timedelta(minutes=5))
        scheduler.start.assert_called_once()

    def test_cleanup_job_deletes_stale_drafts(self):
        stale = FormDraft.objects.create(first_name='Old')
        FormDraft.objects.filter(pk=stale.pk).update(updated_at=timezone.now() - timedelta(hours=2))

        self.assertEqual(cleanup_form_drafts_job(), 1)


@override_settings(ENABLE_DRAFT_CLEANUP_SCHEDULER=True)
class SchedulerStartupTestCase(TestCase):
    """Test cases for starting the scheduler from the app config"""

    def ready(self, argv):
        with patch('apps.customers.apps.sys.argv', argv):
            apps.get_app_config('customers').ready()

    @patch('apps.customers.scheduler.start_scheduler')
    def test_not_started_for_management_commands(self, mock_start):
        self.ready(['manage.py', 'migrate'])
        self.ready(['/usr/bin/django-admin', 'cleanup_form_drafts'])

        mock_start.assert_not_called()

    @patch('apps.customers.scheduler.start_scheduler')
    def test_started_for_servers(self, mock_start):
        self.ready(['manage.py', 'runserver'])
        self.ready(['/venv/bin/gunicorn', 'core.wsgi:application'])

        self.assertEqual(mock_start.call_count, 2)

    @override_settings(ENABLE_DRAFT_CLEANUP_SCHEDULER=False)
    @patch('apps.customers.scheduler.start_scheduler')
    def test_not_started_when_disabled(self, mock_start):
        self.ready(['/venv/bin/gunicorn', 'core.wsgi:application'])

        mock_start.assert_not_called()

    @patch('apps.customers.scheduler.start_scheduler', side_effect=OperationalError('no such table: django_apscheduler_djangojob'))
    def test_start_failure_does_not_break_startup(self, mock_start):
        with self.assertLogs('apps.customers.apps', level='ERROR') as logs:
            self.ready(['/venv/bin/gunicorn', 'core.wsgi:application'])

        mock_start.assert_called_once()
        self.assertIn('Failed to start draft cleanup scheduler', logs.output[0])


class AdminEndpointsTestCase(APITestCase):
    """Test cases for admin read and export endpoints"""

    def setUp(self):
        self.customer = create_customer(city='Berlin', street='Hauptstrasse', house_number='12', postal_code='10115')
        self.draft = FormDraft.objects.create(first_name='Draft', last_name='User')

    def test_customer_list_requires_authentication(self):
        response = self.client.get(reverse('customers:customer-list'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_customer_list_rejects_wrong_owner_token(self):
        response = self.client.get(reverse('customers:customer-list'), HTTP_X_OWNER_TOKEN='wrong')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_customer_list(self):
        response = self.client.get(reverse('customers:customer-list'), **OWNER_TOKEN_HEADER)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['phoneNumber'], '+4915550001')
        self.assertEqual(response.data[0]['discountCode'], 'RC10-ABC123')
        self.assertNotIn('phoneVerificationCode', response.data[0])

    def test_form_data_sync(self):
        response = self.client.get(reverse('customers:form-data-sync'), **OWNER_TOKEN_HEADER)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['firstName'], 'Anna')
        self.assertFalse(response.data[0]['isDraft'])

    def test_submissions_lists_drafts_first(self):
        response = self.client.get(reverse('customers:submissions'), **OWNER_TOKEN_HEADER)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertTrue(response.data[0]['isDraft'])
        self.assertEqual(response.data[0]['status'], 'In progress')
        self.assertEqual(response.data[1]['status'], 'Active')
        self.assertEqual(response.data[1]['promoCode'], 'RC10-ABC123')

    def test_export_csv(self):
        response = self.client.get(reverse('customers:export-csv'), **OWNER_TOKEN_HEADER)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response['Content-Type'].startswith('text/csv'))
        self.assertIn('attachment;', response['Content-Disposition'])

        content = response.content.decode('utf-8')
        self.assertTrue(content.startswith('\ufeff'))
        lines = content.lstrip('\ufeff').strip().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith('ID,First name'))
        self.assertIn('"Hauptstrasse, 12, Berlin, 10115, DE"', lines[1])

    def test_export_json(self):
        response = self.client.get(reverse('customers:export-json'), **OWNER_TOKEN_HEADER)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['data'][0]['Discount code'], 'RC10-ABC123')
        self.assertIn('exportDate', response.data)

    def test_export_records_full_address(self):
        records = CustomerExportService.export_records([self.customer])
        self.assertEqual(records[0]['Full address'], 'Hauptstrasse, 12, Berlin, 10115, DE')


class HealthViewTestCase(APITestCase):

    def test_health(self):
        response = self.client.get(reverse('customers:health'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'status': 'ok'})


class CreateTestCustomersCommandTestCase(TestCase):

    def test_create_test_customers(self):
        out = StringIO()
        call_command('create_test_customers', customers=4, drafts=2, stdout=out)

        self.assertEqual(Customer.objects.count(), 4)
        self.assertEqual(Customer.objects.filter(is_verified=True).count(), 2)
        self.assertEqual(MessageSubscription.objects.count(), 2)
        self.assertEqual(FormDraft.objects.count(), 2)
        for customer in Customer.objects.all():
            self.assertTrue(re.match(r'^RC10-[A-Z0-9]{6}$', customer.discount_code))
