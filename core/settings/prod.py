"""
Production settings
"""
from django.core.exceptions import ImproperlyConfigured

from .base import *
import dj_database_url

DEBUG = False

if not os.getenv('SECRET_KEY'):
    raise ImproperlyConfigured("SECRET_KEY must be set in production")

if not OWNER_ACCESS_CODE or not OWNER_PASSWORD:
    raise ImproperlyConfigured("OWNER_ACCESS_CODE and OWNER_PASSWORD must be set in production")

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '').split(',') if os.getenv('ALLOWED_HOSTS') else []
CSRF_TRUSTED_ORIGINS = CORS_ALLOWED_ORIGINS

# Database
DATABASES = {
    'default': dj_database_url.config(
        default=os.getenv('DATABASE_URL'),
        conn_max_age=600,
        conn_health_checks=True,
    )
}

# Behind a TLS-terminating proxy
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SECURE_SSL_REDIRECT = os.getenv('SECURE_SSL_REDIRECT', 'False') == 'True'
SECURE_HSTS_SECONDS = int(os.getenv('SECURE_HSTS_SECONDS', '0'))
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'DENY'

# JWT cookies only travel over HTTPS
COOKIE_SECURE = True

# Draft cleanup runs in production unless explicitly turned off
ENABLE_DRAFT_CLEANUP_SCHEDULER = os.getenv('ENABLE_DRAFT_CLEANUP_SCHEDULER', 'True') == 'True'
