"""GraphQL schema for marketplace integrations and optimization."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List

import strawberry
import strawberry_django
from django.conf import settings
from strawberry import auto
from strawberry.scalars import JSON
from strawberry.types import Info

from apps.contracts.schema import ContractType
from apps.core.context import Context
from apps.core.permissions import check_perm, require_perm
from apps.core.schema import DeleteResult
from .models import MarketplaceIntegration, MarketplaceProduct, MarketplaceSyncLog
from .services.catalog import ExternalProduct
from .services.optimization import build_optimization_report
from .services.providers import get_provider
from .services.search import search_marketplace
from .tasks import sync_marketplace_products_task

logger = logging.getLogger(__name__)


@strawberry_django.type(MarketplaceIntegration)
class MarketplaceIntegrationType:
    """A connected cloud marketplace account."""

    id: auto
    account_name: auto
    account_id: auto
    aws_region: auto
    connection_type: auto
    role_arn: auto
    connection_status: auto
    permissions_marketplace: auto
    last_connection_test: auto
    connection_error: auto
    created_at: auto

    @strawberry.field
    def product_count(self) -> int:
        return self.products.count()

    @strawberry.field
    def last_synced_at(self) -> datetime | None:
        log = self.sync_logs.filter(status=MarketplaceSyncLog.Status.COMPLETED).first()
        return log.completed_at if log else None


@strawberry_django.type(MarketplaceSyncLog)
class MarketplaceSyncLogType:
    id: auto
    data_type: auto
    status: auto
    records_synced: auto
    records_failed: auto
    error_message: auto
    started_at: auto
    completed_at: auto

    @strawberry.field
    def integration_id(self) -> strawberry.ID:
        return self.integration_id


@strawberry.type
class MarketplaceProductType:
    """A marketplace product, synced or found by live search."""

    product_id: str
    product_name: str
    vendor: str
    product_type: str
    monthly_cost: Decimal | None
    currency: str
    availability: str
    match_score: float | None
    marketplace_url: str
    metadata: JSON


def _product_type(product: ExternalProduct) -> MarketplaceProductType:
    return MarketplaceProductType(
        product_id=product.product_id,
        product_name=product.product_name,
        vendor=product.vendor,
        product_type=product.product_type,
        monthly_cost=product.monthly_cost,
        currency=product.currency,
        availability=product.availability.value,
        match_score=product.match_score_hint,
        marketplace_url=product.marketplace_url,
        metadata=product.metadata,
    )


@strawberry.type
class OptimizationOpportunityType:
    contract: ContractType
    matched_product: MarketplaceProductType
    current_monthly_cost: Decimal
    aws_monthly_cost: Decimal
    monthly_savings: Decimal
    annual_savings: Decimal
    savings_percentage: Decimal
    has_direct_match: bool


@strawberry.type
class ContractRecommendationType:
    """Marketplace findings for one expiring marketplace contract."""

    contract: ContractType
    days_left: int
    urgency: str
    products: List[MarketplaceProductType]
    best_match: MarketplaceProductType | None
    opportunity: OptimizationOpportunityType | None
    search_error: str | None


@strawberry.type
class MarketplaceOptimizationType:
    opportunities: List[OptimizationOpportunityType]
    recommendations: List[ContractRecommendationType]
    total_annual_savings: Decimal
    integration_count: int


def _opportunity_type(opportunity) -> OptimizationOpportunityType:
    return OptimizationOpportunityType(
        contract=opportunity.contract,
        matched_product=_product_type(opportunity.matched_product),
        current_monthly_cost=opportunity.current_monthly_cost,
        aws_monthly_cost=opportunity.aws_monthly_cost,
        monthly_savings=opportunity.monthly_savings,
        annual_savings=opportunity.annual_savings,
        savings_percentage=opportunity.savings_percentage,
        has_direct_match=opportunity.has_direct_match,
    )


@strawberry.input
class CreateMarketplaceIntegrationInput:
    account_name: str
    account_id: str = ""
    aws_region: str = "us-east-1"
    connection_type: str = "iam_role"
    role_arn: str = ""
    external_id: str = ""


@strawberry.type
class MarketplaceIntegrationResult:
    integration: MarketplaceIntegrationType | None = None
    success: bool = False
    error: str | None = None


@strawberry.type
class SyncTriggerResult:
    success: bool = False
    error: str | None = None


@strawberry.type
class MarketplaceQuery:
    """Marketplace queries."""

    @strawberry.field
    def marketplace_integrations(self, info: Info[Context, None]) -> List[MarketplaceIntegrationType]:
        user = require_perm(info, "marketplace", "read")
        if not user.tenant:
            return []
        return list(MarketplaceIntegration.objects.for_tenant(user.tenant))

    @strawberry.field
    def marketplace_products(
        self,
        info: Info[Context, None],
        integration_id: strawberry.ID | None = None,
    ) -> List[MarketplaceProductType]:
        """Synced marketplace products, optionally for one integration."""
        user = require_perm(info, "marketplace", "read")
        if not user.tenant:
            return []

        queryset = MarketplaceProduct.objects.for_tenant(user.tenant)
        if integration_id:
            queryset = queryset.filter(integration_id=integration_id)
        return [_product_type(p.to_external_product()) for p in queryset]

    @strawberry.field
    def sync_logs(
        self,
        info: Info[Context, None],
        integration_id: strawberry.ID | None = None,
        limit: int = 20,
    ) -> List[MarketplaceSyncLogType]:
        user = require_perm(info, "marketplace", "read")
        if not user.tenant:
            return []

        queryset = MarketplaceSyncLog.objects.for_tenant(user.tenant)
        if integration_id:
            queryset = queryset.filter(integration_id=integration_id)
        return list(queryset[:limit])

    @strawberry.field
    def marketplace_optimization(
        self,
        info: Info[Context, None],
        live_search: bool = True,
    ) -> MarketplaceOptimizationType:
        """Savings opportunities for expiring marketplace contracts."""
        user = require_perm(info, "marketplace", "read")
        if not user.tenant:
            return MarketplaceOptimizationType(
                opportunities=[],
                recommendations=[],
                total_annual_savings=Decimal("0"),
                integration_count=0,
            )

        report = build_optimization_report(
            user.tenant,
            info.context.reference_date,
            live_search=live_search,
        )
        return MarketplaceOptimizationType(
            opportunities=[_opportunity_type(o) for o in report.opportunities],
            recommendations=[
                ContractRecommendationType(
                    contract=r.contract,
                    days_left=r.candidate.days_left,
                    urgency=r.candidate.urgency.value,
                    products=[_product_type(p) for p in r.products],
                    best_match=_product_type(r.best_match) if r.best_match else None,
                    opportunity=_opportunity_type(r.opportunity) if r.opportunity else None,
                    search_error=r.search_error,
                )
                for r in report.recommendations
            ],
            total_annual_savings=report.total_annual_savings,
            integration_count=report.integration_count,
        )

    @strawberry.field
    def search_marketplace(
        self,
        info: Info[Context, None],
        integration_id: strawberry.ID,
        query: str,
        product_type: str = "All",
        max_results: int | None = None,
    ) -> List[MarketplaceProductType]:
        """Live search of the marketplace catalog through a connected integration."""
        user = require_perm(info, "marketplace", "read")
        integration = MarketplaceIntegration.objects.for_tenant(user.tenant).filter(id=integration_id).first()
        if not integration:
            raise ValueError("Integration not found")

        provider = get_provider(integration)
        if provider is None:
            raise ValueError("No marketplace provider configured")

        products = search_marketplace(
            provider,
            query,
            product_type=product_type,
            max_results=max_results or settings.MARKETPLACE_SEARCH_MAX_RESULTS,
            min_score=settings.MARKETPLACE_SEARCH_MIN_SCORE,
        )
        return [_product_type(p) for p in products]


@strawberry.type
class MarketplaceMutation:
    """Marketplace mutations."""

    @strawberry.mutation
    def create_marketplace_integration(
        self,
        info: Info[Context, None],
        input: CreateMarketplaceIntegrationInput,
    ) -> MarketplaceIntegrationResult:
        """Register a marketplace account and test the connection when a provider is configured."""
        user, err = check_perm(info, "marketplace", "settings")
        if err:
            return MarketplaceIntegrationResult(error=err)
        if not user.tenant:
            return MarketplaceIntegrationResult(error="No tenant assigned")

        if input.connection_type not in MarketplaceIntegration.ConnectionType.values:
            return MarketplaceIntegrationResult(error=f"Invalid connection type: {input.connection_type}")
        if input.connection_type == MarketplaceIntegration.ConnectionType.IAM_ROLE and not input.role_arn:
            return MarketplaceIntegrationResult(error="Role ARN is required for IAM role connections")

        integration = MarketplaceIntegration.objects.create(
            tenant=user.tenant,
            account_name=input.account_name.strip(),
            account_id=input.account_id.strip(),
            aws_region=input.aws_region,
            connection_type=input.connection_type,
            role_arn=input.role_arn.strip(),
            external_id=input.external_id,
        )

        provider = get_provider(integration)
        if provider is not None:
            integration.connection_status = MarketplaceIntegration.ConnectionStatus.VALIDATING
            integration.save(update_fields=["connection_status", "updated_at"])
            try:
                result = provider.test_connection()
            except Exception as e:
                logger.error("Connection test failed for integration %s: %s", integration.id, e)
                result = {"success": False, "error": str(e)}
            integration.record_connection_test(result)

        return MarketplaceIntegrationResult(integration=integration, success=True)

    @strawberry.mutation
    def delete_marketplace_integration(
        self,
        info: Info[Context, None],
        integration_id: strawberry.ID,
    ) -> DeleteResult:
        """Delete an integration with its synced products and sync logs."""
        user, err = check_perm(info, "marketplace", "settings")
        if err:
            return DeleteResult(error=err)
        if not user.tenant:
            return DeleteResult(error="No tenant assigned")

        integration = MarketplaceIntegration.objects.for_tenant(user.tenant).filter(id=integration_id).first()
        if not integration:
            return DeleteResult(error="Integration not found")

        integration.delete()
        return DeleteResult(success=True)

    @strawberry.mutation
    def trigger_marketplace_sync(
        self,
        info: Info[Context, None],
        integration_id: strawberry.ID,
    ) -> SyncTriggerResult:
        """Queue a product sync for an integration."""
        user, err = check_perm(info, "marketplace", "sync")
        if err:
            return SyncTriggerResult(error=err)
        if not user.tenant:
            return SyncTriggerResult(error="No tenant assigned")

        integration = MarketplaceIntegration.objects.for_tenant(user.tenant).filter(id=integration_id).first()
        if not integration:
            return SyncTriggerResult(error="Integration not found")
        if not integration.is_connected:
            return SyncTriggerResult(error="Integration is not connected")

        sync_marketplace_products_task.delay(integration.id)
        return SyncTriggerResult(success=True)
