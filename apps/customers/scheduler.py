"""
Scheduler for periodic form draft cleanup
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from django.conf import settings
from django_apscheduler.jobstores import DjangoJobStore

logger = logging.getLogger(__name__)


def cleanup_form_drafts_job():
    """
    Job function deleting drafts untouched for longer than the TTL
    """
    from apps.customers.services import FormDraftService

    deleted_count = FormDraftService.cleanup_stale_drafts()
    if deleted_count:
        logger.info("Deleted %s stale form drafts", deleted_count)
    return deleted_count


def start_scheduler():
    """
    Start the background scheduler for draft cleanup
    """
    scheduler = BackgroundScheduler(timezone=settings.TIME_ZONE)
    scheduler.add_jobstore(DjangoJobStore(), "default")

    scheduler.add_job(
        cleanup_form_drafts_job,
        trigger=IntervalTrigger(minutes=settings.FORM_DRAFT_CLEANUP_INTERVAL_MINUTES),
        id='cleanup_form_drafts_job',
        name='Delete stale registration form drafts',
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info(
        "Draft cleanup scheduler started. Runs every %s minutes.",
        settings.FORM_DRAFT_CLEANUP_INTERVAL_MINUTES
    )
    return scheduler
