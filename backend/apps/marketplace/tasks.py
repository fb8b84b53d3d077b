"""Celery tasks for marketplace integrations."""
import logging

from celery import shared_task

from apps.marketplace.models import MarketplaceIntegration, MarketplaceSyncLog
from apps.marketplace.services.sync import SyncError, sync_marketplace_products

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=10,  # 10 second delay before retry
    max_retries=1,  # 1 retry attempt, also read by the final-failure check
    acks_late=True,  # Don't ack until task completes (survives worker crash)
)
def sync_marketplace_products_task(self, integration_id: int) -> bool:
    """
    Background task to sync subscribed products for a marketplace integration.

    Args:
        integration_id: ID of the MarketplaceIntegration to sync

    Returns:
        True if the sync completed, False otherwise
    """
    try:
        integration = MarketplaceIntegration.objects.select_related("tenant").get(id=integration_id)
    except MarketplaceIntegration.DoesNotExist:
        logger.error("Marketplace integration %s not found for sync", integration_id)
        return False

    logger.info(
        "Starting marketplace sync for integration %s (attempt %s)",
        integration_id,
        self.request.retries + 1,
    )

    try:
        result = sync_marketplace_products(integration)
    except SyncError as e:
        logger.error("Marketplace sync for integration %s not started: %s", integration_id, e)
        return False
    except Exception as e:
        if self.request.retries >= self.max_retries:
            MarketplaceSyncLog.objects.filter(
                integration=integration,
                status=MarketplaceSyncLog.Status.IN_PROGRESS,
            ).update(status=MarketplaceSyncLog.Status.FAILED, error_message=str(e))
            logger.error("Marketplace sync failed for integration %s after retries: %s", integration_id, e)
            return False
        raise  # Re-raise for Celery retry

    return result.success


@shared_task
def sync_connected_integrations_task() -> int:
    """Queue a product sync for every connected integration of an active tenant."""
    integration_ids = list(
        MarketplaceIntegration.objects.filter(
            connection_status=MarketplaceIntegration.ConnectionStatus.CONNECTED,
            tenant__is_active=True,
        ).values_list("id", flat=True)
    )
    for integration_id in integration_ids:
        sync_marketplace_products_task.delay(integration_id)

    logger.info("Queued marketplace sync for %d integrations", len(integration_ids))
    return len(integration_ids)
