"""Pull subscribed products from a marketplace integration into the database."""
import logging
from dataclasses import dataclass
from datetime import timezone as dt_timezone
from typing import Optional

from dateutil.parser import isoparse
from django.db import transaction
from django.utils import timezone

from apps.marketplace.models import MarketplaceIntegration, MarketplaceProduct, MarketplaceSyncLog
from apps.marketplace.services.catalog import (
    ExternalProduct,
    ProductNormalizationError,
    deduplicate_products,
    normalize_product,
)
from apps.marketplace.services.providers import MarketplaceProvider, get_provider

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when a sync cannot start."""


@dataclass
class SyncResult:
    sync_log: MarketplaceSyncLog
    records_synced: int = 0
    records_failed: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


def _parse_timestamp(value):
    if not value:
        return None
    if hasattr(value, "tzinfo"):
        return value
    try:
        parsed = isoparse(str(value))
    except ValueError:
        return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _upsert_product(integration: MarketplaceIntegration, product: ExternalProduct, synced_at):
    metadata = product.metadata or {}
    MarketplaceProduct.objects.update_or_create(
        integration=integration,
        product_id=product.product_id,
        defaults={
            "tenant_id": integration.tenant_id,
            "product_name": product.product_name[:500],
            "vendor": product.vendor[:255],
            "product_type": product.product_type[:100],
            "source": product.source.value if product.source else "",
            "monthly_cost": product.monthly_cost,
            "currency": product.currency,
            "availability": product.availability.value,
            "match_score_hint": product.match_score_hint,
            "marketplace_url": product.marketplace_url,
            "status": MarketplaceProduct.Status.ACTIVE,
            "subscription_start": _parse_timestamp(metadata.get("acceptanceTime")),
            "subscription_end": _parse_timestamp(metadata.get("endTime")),
            "metadata": metadata,
            "synced_at": synced_at,
        },
    )


def sync_marketplace_products(
    integration: MarketplaceIntegration,
    provider: MarketplaceProvider | None = None,
) -> SyncResult:
    """
    Sync subscribed products for an integration.

    Records that cannot be normalized are counted as failed; the run still
    completes. A provider failure marks the sync log as failed.

    Args:
        integration: The integration to sync
        provider: Provider to use; defaults to the configured provider

    Returns:
        SyncResult with counts and the sync log

    Raises:
        SyncError: if no provider is configured
    """
    provider = provider or get_provider(integration)
    if provider is None:
        raise SyncError("No marketplace provider configured")

    sync_log = MarketplaceSyncLog.objects.create(
        tenant=integration.tenant,
        integration=integration,
        data_type=MarketplaceSyncLog.DataType.PRODUCTS,
    )
    logger.info("Starting marketplace sync %s for integration %s", sync_log.id, integration.id)

    try:
        raw_records = provider.list_subscriptions()
    except Exception as e:
        logger.error("Marketplace sync failed for integration %s: %s", integration.id, e)
        sync_log.mark_failed(str(e))
        return SyncResult(sync_log=sync_log, error=str(e))

    products = []
    failed = 0
    for raw in raw_records:
        if raw.integration_id is None:
            raw.integration_id = integration.id
        try:
            products.append(normalize_product(raw))
        except ProductNormalizationError as e:
            logger.warning("Skipping marketplace record: %s", e)
            failed += 1

    products = deduplicate_products(products)
    synced_at = timezone.now()
    with transaction.atomic():
        for product in products:
            _upsert_product(integration, product, synced_at)

    sync_log.mark_completed(synced=len(products), failed=failed)
    logger.info(
        "Marketplace sync %s completed: %s synced, %s failed",
        sync_log.id,
        len(products),
        failed,
    )
    return SyncResult(sync_log=sync_log, records_synced=len(products), records_failed=failed)
