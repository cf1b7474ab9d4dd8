from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


class OwnerManager(BaseUserManager):
    """
    Custom manager where email is the unique identifier
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save an owner with the given email and password.
        """
        if not email:
            raise ValueError('The email must be set')

        access_code = extra_fields.pop('access_code', None)
        owner = self.model(email=self.normalize_email(email), **extra_fields)
        owner.set_password(password)
        if access_code:
            owner.set_access_code(access_code)
        owner.save(using=self._db)
        return owner

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser with the given email and password.
        """
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class Owner(AbstractUser):
    """
    The restaurant administrator, identified by email
    """
    username = None

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True, default='')
    access_code = models.CharField(
        max_length=128,
        blank=True,
        default='',
        help_text="Hashed access code"
    )
    totp_secret = models.CharField(max_length=64, null=True, blank=True)
    totp_enabled = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = OwnerManager()

    class Meta:
        db_table = 'owners'
        verbose_name = 'Owner'
        verbose_name_plural = 'Owners'

    def __str__(self):
        return self.email

    def set_access_code(self, raw_access_code):
        self.access_code = make_password(raw_access_code)

    def check_access_code(self, raw_access_code):
        return check_password(raw_access_code, self.access_code)


class LoginSession(models.Model):
    """
    Audit record of one admin login attempt with device and location details
    """
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='login_sessions'
    )
    is_successful = models.BooleanField(default=True)
    login_at = models.DateTimeField(auto_now_add=True)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default='')
    browser = models.CharField(max_length=100, blank=True, default='')
    browser_name = models.CharField(max_length=50, blank=True, default='')
    browser_version = models.CharField(max_length=50, blank=True, default='')
    os = models.CharField(max_length=100, blank=True, default='')
    os_name = models.CharField(max_length=50, blank=True, default='')
    os_version = models.CharField(max_length=50, blank=True, default='')
    device = models.CharField(max_length=100, blank=True, default='')
    device_type = models.CharField(max_length=20, blank=True, default='')
    device_model = models.CharField(max_length=100, blank=True, default='')

    location = models.CharField(max_length=255, blank=True, default='')
    country = models.CharField(max_length=100, blank=True, default='')
    country_code = models.CharField(max_length=2, blank=True, default='')
    region = models.CharField(max_length=100, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='')
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    timezone = models.CharField(max_length=64, blank=True, default='')
    isp = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        db_table = 'owner_login_sessions'
        verbose_name = 'Login session'
        verbose_name_plural = 'Login sessions'
        ordering = ['-login_at']
        indexes = [
            models.Index(fields=['owner', 'login_at'], name='login_sessions_owner_idx'),
        ]

    def __str__(self):
        result = 'success' if self.is_successful else 'failed'
        return f"{self.owner} @ {self.login_at:%Y-%m-%d %H:%M} ({result})"
