import csv
import io
import logging
import random
import secrets
import string
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.crypto import constant_time_compare

from apps.messaging.models import MessageSubscription
from .models import Customer, FormDraft

logger = logging.getLogger(__name__)


class DiscountCodeGenerationError(Exception):
    pass


class CustomerNotFound(Exception):
    pass


class ChannelUnavailable(Exception):
    """The customer has no address on file for the requested channel"""


class InvalidVerificationCode(Exception):
    pass


class DiscountCodeService:
    """
    Service for issuing unique promotional codes
    """
    ALPHABET = string.ascii_uppercase + string.digits
    CODE_LENGTH = 6

    @staticmethod
    def generate_discount_code():
        """
        Generate a random discount code
        Format: prefix followed by 6 base-36 uppercase characters, e.g. RC10-7K2QZD
        """
        suffix = ''.join(
            random.choices(DiscountCodeService.ALPHABET, k=DiscountCodeService.CODE_LENGTH)
        )
        return f"{settings.DISCOUNT_CODE_PREFIX}{suffix}"

    @staticmethod
    def generate_unique_discount_code(max_attempts=None):
        """
        Draw codes until one is not present in storage
        Raises DiscountCodeGenerationError once the attempts are exhausted
        """
        if max_attempts is None:
            max_attempts = settings.DISCOUNT_CODE_MAX_ATTEMPTS

        for _ in range(max_attempts):
            code = DiscountCodeService.generate_discount_code()
            if not Customer.objects.filter(discount_code=code).exists():
                return code

        logger.error("Discount code generation failed after %s attempts", max_attempts)
        raise DiscountCodeGenerationError(
            "Could not generate a unique discount code. Please try again later."
        )


class RegistrationService:
    """
    Service turning form input into an unverified customer record
    """
    STATUS_VERIFIED = 'verified'
    STATUS_PENDING = 'pending_verification'
    STATUS_VERIFICATION_REQUIRED = 'verification_required'

    @staticmethod
    def status_for(customer):
        if customer.is_verified:
            return RegistrationService.STATUS_VERIFIED
        return RegistrationService.STATUS_PENDING

    @staticmethod
    def find_by_phone(phone_number):
        return Customer.objects.filter(phone_number=phone_number).first()

    @staticmethod
    def register(data):
        """
        Register a customer from validated form data
        Returns (customer, status); only a brand new record gets
        STATUS_VERIFICATION_REQUIRED
        """
        fields = dict(data)
        draft_id = fields.pop('draft_id', None)
        phone_number = fields['phone_number']

        existing = RegistrationService.find_by_phone(phone_number)
        if existing:
            logger.info("Registration for known phone number, customer %s", existing.id)
            return existing, RegistrationService.status_for(existing)

        discount_code = DiscountCodeService.generate_unique_discount_code()

        try:
            # Savepoint; a duplicate phone number surfaces here as IntegrityError
            with transaction.atomic():
                customer = Customer.objects.create(
                    discount_code=discount_code,
                    is_verified=False,
                    **fields
                )
        except IntegrityError:
            existing = RegistrationService.find_by_phone(phone_number)
            if existing is None:
                raise
            logger.info("Concurrent registration detected for customer %s", existing.id)
            return existing, RegistrationService.status_for(existing)

        if draft_id:
            FormDraftService.delete_draft(draft_id)

        logger.info("Registered customer %s, verification required", customer.id)
        return customer, RegistrationService.STATUS_VERIFICATION_REQUIRED


class VerificationService:
    """
    Service for sending and confirming per-channel verification codes

    Transports are passed in by the caller so that tests and views decide
    which SMS gateway and mail transport are used.
    """

    def __init__(self, sms_gateway, mail_transport):
        self.sms_gateway = sms_gateway
        self.mail_transport = mail_transport

    @staticmethod
    def generate_verification_code():
        """
        Generate a 4-digit code, uniform over 1000-9999
        """
        return str(1000 + secrets.randbelow(9000))

    @staticmethod
    def get_customer(customer_id):
        try:
            return Customer.objects.get(pk=customer_id)
        except Customer.DoesNotExist:
            raise CustomerNotFound(f"Customer {customer_id} not found")

    def send_code(self, customer_id, channel):
        """
        Generate, store and dispatch a new code for the channel
        Returns False without sending when the channel is already verified
        """
        customer = self.get_customer(customer_id)

        if channel == Customer.CHANNEL_EMAIL and not customer.email:
            raise ChannelUnavailable("No email address on file for verification")

        if customer.is_channel_verified(channel):
            return False

        code = self.generate_verification_code()

        # Overwrites any outstanding code for this channel
        Customer.objects.filter(pk=customer.pk).update(**{
            Customer.code_field(channel): code,
            Customer.sent_at_field(channel): timezone.now(),
            'updated_at': timezone.now(),
        })

        self._dispatch(channel, customer.recipient_for(channel), code)
        logger.info("Verification code sent to customer %s via %s", customer.id, channel)
        return True

    def _dispatch(self, channel, recipient, code):
        body = f"Your verification code: {code}. Use it to complete your registration."

        if channel == Customer.CHANNEL_PHONE:
            self.sms_gateway.send_sms(recipient, body)
        else:
            self.mail_transport.send_mail(
                recipient,
                settings.VERIFICATION_MESSAGE_SUBJECT,
                body,
                html=f"<p>{body}</p>",
            )

    @staticmethod
    def _code_matches(customer, channel, code):
        stored_code = getattr(customer, Customer.code_field(channel))
        if not stored_code or not constant_time_compare(stored_code, code):
            return False

        expiry_minutes = settings.VERIFICATION_CODE_EXPIRY_MINUTES
        if expiry_minutes > 0:
            sent_at = getattr(customer, Customer.sent_at_field(channel))
            if sent_at is None or timezone.now() - sent_at > timedelta(minutes=expiry_minutes):
                return False

        return True

    def confirm_code(self, customer_id, channel, code):
        """
        Confirm a code for the channel
        Returns (customer, confirmed, became_verified); confirmed is False when
        the channel was already verified before this call, became_verified is
        True only for the call that completed full verification
        """
        customer = self.get_customer(customer_id)

        if customer.is_channel_verified(channel):
            return customer, False, False

        if not self._code_matches(customer, channel, code):
            raise InvalidVerificationCode("Invalid or expired verification code")

        verified_field = Customer.verified_field(channel)
        code_field = Customer.code_field(channel)

        with transaction.atomic():
            now = timezone.now()

            # Guarded update: only one concurrent confirm can flip the flag
            updated = Customer.objects.filter(
                pk=customer.pk,
                **{verified_field: False, code_field: code}
            ).update(**{
                verified_field: True,
                code_field: None,
                Customer.sent_at_field(channel): None,
                'updated_at': now,
            })

            if not updated:
                customer.refresh_from_db()
                if customer.is_channel_verified(channel):
                    return customer, False, False
                raise InvalidVerificationCode("Invalid or expired verification code")

            became_verified = Customer.objects.filter(
                pk=customer.pk,
                is_phone_verified=True,
                is_email_verified=True,
                is_verified=False,
            ).update(is_verified=True, updated_at=now)

            if became_verified:
                Customer.objects.filter(
                    pk=customer.pk,
                    consent_given_at__isnull=True,
                ).filter(
                    Q(consent_email=True) | Q(consent_sms=True)
                ).update(consent_given_at=now)

            customer.refresh_from_db()

            if became_verified:
                MessageSubscription.objects.get_or_create(
                    customer=customer,
                    defaults={'subscribed': customer.consent_sms}
                )
                logger.info("Customer %s is fully verified", customer.id)

        logger.info("Customer %s confirmed %s", customer.id, channel)
        return customer, True, bool(became_verified)


class FormDraftService:
    """
    Service for autosaved registration drafts
    """
    DRAFT_FIELDS = (
        'first_name',
        'last_name',
        'phone_number',
        'email',
        'country',
        'birth_date',
        'city',
        'street',
        'postal_code',
        'house_number',
        'preferred_food',
        'feedback',
    )

    @staticmethod
    def save_draft(data, draft_id=None):
        """
        Create a draft or overwrite an existing one
        Returns the draft id; raises FormDraft.DoesNotExist for an unknown id
        """
        values = {field: data.get(field) or None for field in FormDraftService.DRAFT_FIELDS}

        if draft_id:
            updated = FormDraft.objects.filter(pk=draft_id).update(
                updated_at=timezone.now(),
                **values
            )
            if not updated:
                raise FormDraft.DoesNotExist(f"Draft {draft_id} not found")
            return draft_id

        return FormDraft.objects.create(**values).id

    @staticmethod
    def delete_draft(draft_id):
        """
        Delete a draft; a missing draft is not an error
        """
        deleted_count = FormDraft.objects.filter(pk=draft_id).delete()[0]
        return deleted_count

    @staticmethod
    def cleanup_stale_drafts(ttl_minutes=None):
        """
        Delete drafts untouched for longer than the TTL
        (can be run as a periodic task)
        """
        if ttl_minutes is None:
            ttl_minutes = settings.FORM_DRAFT_TTL_MINUTES

        cutoff = timezone.now() - timedelta(minutes=ttl_minutes)
        deleted_count = FormDraft.objects.filter(updated_at__lt=cutoff).delete()[0]

        return deleted_count


class CustomerExportService:
    """
    Flattened customer views for the admin table and spreadsheet exports
    """
    CSV_HEADERS = [
        'ID',
        'First name',
        'Last name',
        'Country',
        'Phone',
        'Email',
        'Birth date',
        'City',
        'Street',
        'House number',
        'Postal code',
        'Preferred food',
        'Feedback',
        'Discount code',
        'Registered at',
        'Full address',
    ]

    @staticmethod
    def _iso(value):
        return value.isoformat() if value else ''

    @staticmethod
    def export_row(customer):
        return [
            str(customer.id),
            customer.first_name or '',
            customer.last_name or '',
            customer.country or '',
            customer.phone_number or '',
            customer.email or '',
            CustomerExportService._iso(customer.birth_date),
            customer.city or '',
            customer.street or '',
            customer.house_number or '',
            customer.postal_code or '',
            customer.preferred_food or '',
            customer.feedback or '',
            customer.discount_code or '',
            CustomerExportService._iso(customer.created_at),
            customer.full_address,
        ]

    @staticmethod
    def export_records(customers):
        headers = CustomerExportService.CSV_HEADERS
        return [
            dict(zip(headers, CustomerExportService.export_row(customer)))
            for customer in customers
        ]

    @staticmethod
    def export_csv(customers):
        """
        Render customers as CSV text with a UTF-8 BOM so spreadsheet tools
        detect the encoding
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CustomerExportService.CSV_HEADERS)
        for customer in customers:
            writer.writerow(CustomerExportService.export_row(customer))
        return '\ufeff' + buffer.getvalue()

    @staticmethod
    def form_data_row(customer):
        return {
            'id': str(customer.id),
            'firstName': customer.first_name,
            'lastName': customer.last_name,
            'country': customer.country or '',
            'phoneNumber': customer.phone_number,
            'email': customer.email or '',
            'birthDate': CustomerExportService._iso(customer.birth_date),
            'city': customer.city or '',
            'street': customer.street or '',
            'postalCode': customer.postal_code or '',
            'houseNumber': customer.house_number or '',
            'preferredFood': customer.preferred_food or '',
            'feedback': customer.feedback or '',
            'discountCode': customer.discount_code or '',
            'timestamp': CustomerExportService._iso(customer.created_at),
            'isDraft': False,
        }

    @staticmethod
    def submission_rows():
        """
        Drafts first (newest activity first), then completed registrations
        """
        draft_rows = [
            {
                'id': str(draft.id),
                'name': f"{draft.first_name or ''} {draft.last_name or ''}".strip() or 'Filling in...',
                'phone': draft.phone_number or '',
                'email': draft.email or '',
                'country': draft.country or '',
                'city': draft.city or '',
                'street': draft.street or '',
                'postalCode': draft.postal_code or '',
                'houseNumber': draft.house_number or '',
                'birthDate': draft.birth_date or '',
                'preferences': draft.preferred_food or draft.feedback or '',
                'feedback': draft.feedback or '',
                'promoCode': 'In progress...',
                'registrationDate': CustomerExportService._iso(draft.updated_at),
                'status': 'In progress',
                'isDraft': True,
            }
            for draft in FormDraft.objects.order_by('-updated_at')
        ]

        completed_rows = [
            {
                'id': str(customer.id),
                'name': customer.full_name,
                'phone': customer.phone_number,
                'email': customer.email or '',
                'country': customer.country or '',
                'city': customer.city or '',
                'street': customer.street or '',
                'postalCode': customer.postal_code or '',
                'houseNumber': customer.house_number or '',
                'birthDate': CustomerExportService._iso(customer.birth_date),
                'preferences': customer.preferred_food or '',
                'feedback': customer.feedback or '',
                'promoCode': customer.discount_code,
                'registrationDate': CustomerExportService._iso(customer.created_at),
                'status': 'Active',
                'isDraft': False,
            }
            for customer in Customer.objects.order_by('-created_at')
        ]

        return draft_rows + completed_rows
