import uuid

from django.db import models


class Customer(models.Model):
    """
    A restaurant guest who registered through the web form
    """
    CHANNEL_PHONE = 'phone'
    CHANNEL_EMAIL = 'email'
    CHANNEL_CHOICES = [
        (CHANNEL_PHONE, 'Phone'),
        (CHANNEL_EMAIL, 'Email'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    phone_number = models.CharField(
        max_length=20,
        unique=True,
        help_text="Customer's phone number"
    )
    email = models.EmailField(null=True, blank=True)
    country = models.CharField(max_length=2, blank=True, default='')
    birth_date = models.DateField(null=True, blank=True)
    city = models.CharField(max_length=100, blank=True, default='')
    street = models.CharField(max_length=200, blank=True, default='')
    postal_code = models.CharField(max_length=20, blank=True, default='')
    house_number = models.CharField(max_length=20, blank=True, default='')
    preferred_food = models.TextField(blank=True, default='')
    feedback = models.TextField(blank=True, default='')
    discount_code = models.CharField(
        max_length=20,
        unique=True,
        help_text="Promotional code issued after verification"
    )

    is_verified = models.BooleanField(
        default=False,
        help_text="Both phone and email have been verified"
    )
    is_phone_verified = models.BooleanField(default=False)
    is_email_verified = models.BooleanField(default=False)
    phone_verification_code = models.CharField(max_length=4, null=True, blank=True)
    email_verification_code = models.CharField(max_length=4, null=True, blank=True)
    phone_code_sent_at = models.DateTimeField(null=True, blank=True)
    email_code_sent_at = models.DateTimeField(null=True, blank=True)

    consent_email = models.BooleanField(default=False)
    consent_sms = models.BooleanField(default=False)
    consent_given_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'customers'
        verbose_name = 'Customer'
        verbose_name_plural = 'Customers'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['created_at'], name='customers_created_idx'),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.phone_number})"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def full_address(self):
        parts = [self.street, self.house_number, self.city, self.postal_code, self.country]
        return ', '.join(part for part in parts if part)

    @staticmethod
    def verified_field(channel):
        return f'is_{channel}_verified'

    @staticmethod
    def code_field(channel):
        return f'{channel}_verification_code'

    @staticmethod
    def sent_at_field(channel):
        # phone_code_sent_at / email_code_sent_at
        return f'{channel}_code_sent_at'

    def is_channel_verified(self, channel):
        return getattr(self, self.verified_field(channel))

    def recipient_for(self, channel):
        if channel == self.CHANNEL_PHONE:
            return self.phone_number
        return self.email


class FormDraft(models.Model):
    """
    Autosaved snapshot of a registration form that has not been submitted yet
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    first_name = models.CharField(max_length=100, null=True, blank=True)
    last_name = models.CharField(max_length=100, null=True, blank=True)
    phone_number = models.CharField(max_length=20, null=True, blank=True)
    email = models.CharField(max_length=254, null=True, blank=True)
    country = models.CharField(max_length=2, null=True, blank=True)
    birth_date = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        help_text="Raw value typed into the form"
    )
    city = models.CharField(max_length=100, null=True, blank=True)
    street = models.CharField(max_length=200, null=True, blank=True)
    postal_code = models.CharField(max_length=20, null=True, blank=True)
    house_number = models.CharField(max_length=20, null=True, blank=True)
    preferred_food = models.TextField(null=True, blank=True)
    feedback = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'form_drafts'
        verbose_name = 'Form draft'
        verbose_name_plural = 'Form drafts'
        ordering = ['-updated_at']
        indexes = [
            models.Index(fields=['updated_at'], name='form_drafts_updated_idx'),
        ]

    def __str__(self):
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return f"Draft {name or self.id}"
