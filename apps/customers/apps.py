import logging
import os
import sys

from django.apps import AppConfig

logger = logging.getLogger(__name__)


def is_management_command():
    """
    True for manage.py / django-admin invocations other than runserver
    """
    program = os.path.basename(sys.argv[0]) if sys.argv else ''
    if program not in ('manage.py', 'django-admin'):
        return False
    return len(sys.argv) < 2 or sys.argv[1] != 'runserver'


class CustomersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.customers'
    verbose_name = 'Customers'

    def ready(self):
        """
        Start the draft cleanup scheduler when the app is ready
        Only when explicitly enabled, and never for migrate or other commands
        """
        from django.conf import settings

        if not settings.ENABLE_DRAFT_CLEANUP_SCHEDULER or is_management_command():
            return

        try:
            from .scheduler import start_scheduler
            start_scheduler()
        except Exception as e:
            # Log error but don't fail app startup
            logger.error("Failed to start draft cleanup scheduler: %s", e)
