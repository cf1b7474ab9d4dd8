"""
Test settings
"""
from .base import *

DEBUG = False

ALLOWED_HOSTS = ['*']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

OWNER_EMAIL = 'owner@example.com'
OWNER_ACCESS_CODE = 'ACCESS-2024'
OWNER_PASSWORD = 'S3cret-Password!'
OWNER_NAME = 'Test Owner'
OWNER_TOKEN = 'legacy-owner-token'

ENABLE_DRAFT_CLEANUP_SCHEDULER = False

LOGGING['root']['level'] = 'CRITICAL'

# Transports stay unconfigured; tests inject their own
SMS_ACCOUNT_SID = ''
SMS_AUTH_TOKEN = ''
SMS_MESSAGING_SERVICE_SID = ''
EMAIL_HOST = ''
MAIL_ENABLED = False

VERIFICATION_CODE_EXPIRY_MINUTES = 0
DISCOUNT_CODE_MAX_ATTEMPTS = 5
FORM_DRAFT_TTL_MINUTES = 60
FORM_DRAFT_CLEANUP_INTERVAL_MINUTES = 5
TOTP_ISSUER = 'Restaurant Admin'
