"""Celery tasks for renewal alerts."""
import logging

from celery import shared_task
from django.utils import timezone

from apps.tenants.models import Tenant
from .services import record_due_reminders

logger = logging.getLogger(__name__)


@shared_task
def record_renewal_reminders_task() -> int:
    """Record today's due renewal reminders for every active tenant."""
    today = timezone.localdate()
    total = 0
    for tenant in Tenant.objects.filter(is_active=True):
        total += len(record_due_reminders(tenant, today))

    logger.info("Recorded %d renewal reminders for %s", total, today)
    return total
