"""
Django settings for the loyalty_service project.
"""

import os
from pathlib import Path
from datetime import timedelta

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-change-this-in-production')

DEBUG = os.getenv('DEBUG', 'False') == 'True'

# Application definition
INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',

    # Local apps (must be before admin for custom User model)
    'apps.accounts',
    'apps.customers.apps.CustomersConfig',
    'apps.messaging',
    'django_apscheduler',  # For scheduled tasks

    'django.contrib.admin',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party apps
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'drf_yasg',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'core.wsgi.application'

# Custom User Model (the restaurant owner / administrator)
AUTH_USER_MODEL = 'accounts.Owner'

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Static files (CSS, JavaScript, Images)
STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# REST Framework settings
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'apps.accounts.authentication.CookieJWTAuthentication',
        'apps.accounts.authentication.OwnerTokenAuthentication',  # Legacy static token
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'TEST_REQUEST_DEFAULT_FORMAT': 'json',
}

# JWT Settings
SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(days=1),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ROTATE_REFRESH_TOKENS': False,
    'UPDATE_LAST_LOGIN': False,
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': SECRET_KEY,
    'AUTH_HEADER_TYPES': ('Bearer',),
    'AUTH_HEADER_NAME': 'HTTP_AUTHORIZATION',
    'USER_ID_FIELD': 'id',
    'USER_ID_CLAIM': 'owner_id',
}

# CORS Settings
CORS_ALLOWED_ORIGINS = os.getenv('CORS_ALLOWED_ORIGINS', '').split(',') if os.getenv('CORS_ALLOWED_ORIGINS') else []
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_HEADERS = [
    'accept',
    'accept-encoding',
    'authorization',
    'content-type',
    'dnt',
    'origin',
    'user-agent',
    'x-csrftoken',
    'x-requested-with',
    'x-owner-token',
]

# Cookie Settings
COOKIE_SECURE = os.getenv('COOKIE_SECURE', 'False') == 'True'  # True in production with HTTPS
COOKIE_HTTPONLY = True
COOKIE_SAMESITE = 'Lax'  # Can be 'Strict', 'Lax', or 'None'
COOKIE_ACCESS_TOKEN_NAME = 'access_token'
COOKIE_REFRESH_TOKEN_NAME = 'refresh_token'

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'WARNING'),
            'propagate': False,
        },
        'apscheduler': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}

# SMS gateway (Twilio-compatible Messages API)
SMS_ACCOUNT_SID = os.getenv('SMS_ACCOUNT_SID', '')
SMS_AUTH_TOKEN = os.getenv('SMS_AUTH_TOKEN', '')
SMS_MESSAGING_SERVICE_SID = os.getenv('SMS_MESSAGING_SERVICE_SID', '')
SMS_API_URL = os.getenv('SMS_API_URL', 'https://api.twilio.com/2010-04-01')
SMS_TIMEOUT_SECONDS = int(os.getenv('SMS_TIMEOUT_SECONDS', '10'))

# Mail (SMTP)
EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = os.getenv('EMAIL_HOST', '')
EMAIL_PORT = int(os.getenv('EMAIL_PORT', '587'))
EMAIL_HOST_USER = os.getenv('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.getenv('EMAIL_HOST_PASSWORD', '')
EMAIL_USE_SSL = EMAIL_PORT == 465
EMAIL_USE_TLS = not EMAIL_USE_SSL and os.getenv('EMAIL_USE_TLS', 'True') == 'True'
EMAIL_TIMEOUT = int(os.getenv('EMAIL_TIMEOUT', '10'))
DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', '')
MAIL_ENABLED = bool(EMAIL_HOST and DEFAULT_FROM_EMAIL)

# Owner (single administrator identity)
OWNER_EMAIL = os.getenv('OWNER_EMAIL', 'owner@example.com')
OWNER_ACCESS_CODE = os.getenv('OWNER_ACCESS_CODE', '')
OWNER_PASSWORD = os.getenv('OWNER_PASSWORD', '')
OWNER_NAME = os.getenv('OWNER_NAME', 'Administrator')
OWNER_TOKEN = os.getenv('OWNER_TOKEN', '')  # Legacy static X-Owner-Token

# Verification Settings
VERIFICATION_CODE_EXPIRY_MINUTES = int(os.getenv('VERIFICATION_CODE_EXPIRY_MINUTES', '0'))  # 0 = codes never expire
VERIFICATION_MESSAGE_SUBJECT = os.getenv('VERIFICATION_MESSAGE_SUBJECT', 'Your verification code')

# Discount Code Settings
DISCOUNT_CODE_PREFIX = os.getenv('DISCOUNT_CODE_PREFIX', 'RC10-')
DISCOUNT_CODE_MAX_ATTEMPTS = int(os.getenv('DISCOUNT_CODE_MAX_ATTEMPTS', '5'))

# Form Draft Settings
FORM_DRAFT_TTL_MINUTES = int(os.getenv('FORM_DRAFT_TTL_MINUTES', '60'))
FORM_DRAFT_CLEANUP_INTERVAL_MINUTES = int(os.getenv('FORM_DRAFT_CLEANUP_INTERVAL_MINUTES', '5'))
ENABLE_DRAFT_CLEANUP_SCHEDULER = os.getenv('ENABLE_DRAFT_CLEANUP_SCHEDULER', 'False') == 'True'

# Two-factor Settings
TOTP_ISSUER = os.getenv('TOTP_ISSUER', 'Restaurant Admin')
TOTP_VALID_WINDOW = int(os.getenv('TOTP_VALID_WINDOW', '1'))
TWO_FACTOR_CHALLENGE_MAX_AGE = int(os.getenv('TWO_FACTOR_CHALLENGE_MAX_AGE', '300'))  # Seconds

# Broadcast Settings
BROADCAST_MAX_WORKERS = int(os.getenv('BROADCAST_MAX_WORKERS', '8'))

# Geolocation Settings
GEOLOCATION_API_URL = os.getenv('GEOLOCATION_API_URL', 'https://ipapi.co')
GEOLOCATION_TIMEOUT_SECONDS = int(os.getenv('GEOLOCATION_TIMEOUT_SECONDS', '5'))

# APScheduler Settings
APSCHEDULER_DATETIME_FORMAT = "N j, Y, f:s a"
APSCHEDULER_RUN_NOW_TIMEOUT = 25  # Seconds

# Swagger/OpenAPI Settings
SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Bearer': {
            'type': 'apiKey',
            'name': 'Authorization',
            'in': 'header',
            'description': 'JWT authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"'
        },
        'OwnerToken': {
            'type': 'apiKey',
            'name': 'X-Owner-Token',
            'in': 'header',
            'description': 'Legacy static owner token'
        },
    },
    'USE_SESSION_AUTH': False,
    'JSON_EDITOR': True,
    'SUPPORTED_SUBMIT_METHODS': ['get', 'post', 'put', 'delete', 'patch'],
    'OPERATIONS_SORTER': 'alpha',
    'TAGS_SORTER': 'alpha',
    'DOC_EXPANSION': 'none',
    'DEEP_LINKING': True,
    'SHOW_EXTENSIONS': True,
    'DEFAULT_MODEL_RENDERING': 'example'
}
