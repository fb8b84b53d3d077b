"""Signals for the tenants app."""
import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

logger = logging.getLogger(__name__)


@receiver(post_save, sender="tenants.Tenant")
def seed_tenant_roles(sender, instance, created, **kwargs):
    """Give new tenants the Admin, Manager and Viewer roles."""
    if created:
        roles = instance.seed_default_roles()
        logger.info("Seeded %d roles for tenant %s", len(roles), instance.id)
