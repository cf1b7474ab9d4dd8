"""
Management command to delete stale registration form drafts
Usage: python manage.py cleanup_form_drafts [--ttl-minutes N]
"""
from django.conf import settings
from django.core.management.base import BaseCommand

from apps.customers.services import FormDraftService


class Command(BaseCommand):
    help = 'Delete form drafts that have not been updated within the TTL'

    def add_arguments(self, parser):
        parser.add_argument(
            '--ttl-minutes',
            type=int,
            default=None,
            help=f'Draft lifetime in minutes (default: {settings.FORM_DRAFT_TTL_MINUTES})'
        )

    def handle(self, *args, **options):
        deleted_count = FormDraftService.cleanup_stale_drafts(ttl_minutes=options['ttl_minutes'])
        self.stdout.write(self.style.SUCCESS(f'Deleted {deleted_count} stale form drafts'))
