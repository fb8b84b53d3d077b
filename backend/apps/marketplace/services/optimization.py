"""Marketplace optimization: which expiring contracts would be cheaper on the marketplace."""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from apps.contracts.models import Contract
from apps.contracts.services.renewals import RenewalCandidate, classify_renewals
from apps.marketplace.models import MarketplaceIntegration, MarketplaceProduct
from apps.marketplace.services.catalog import ExternalProduct, deduplicate_products
from apps.marketplace.services.matching import find_best_match
from apps.marketplace.services.providers import MarketplaceProvider, get_provider
from apps.marketplace.services.savings import OptimizationOpportunity, compute_savings
from apps.marketplace.services.search import search_for_contracts

logger = logging.getLogger(__name__)


@dataclass
class ContractRecommendation:
    """Marketplace findings for one expiring marketplace contract."""

    candidate: RenewalCandidate
    products: list[ExternalProduct] = field(default_factory=list)
    best_match: Optional[ExternalProduct] = None
    opportunity: Optional[OptimizationOpportunity] = None
    search_error: Optional[str] = None

    @property
    def contract(self):
        return self.candidate.contract


@dataclass
class OptimizationReport:
    opportunities: list[OptimizationOpportunity] = field(default_factory=list)
    recommendations: list[ContractRecommendation] = field(default_factory=list)
    integration_count: int = 0

    @property
    def total_annual_savings(self) -> Decimal:
        return total_annual_savings(self.opportunities)


def _is_marketplace(contract) -> bool:
    return getattr(contract, "provider_type", None) == Contract.MARKETPLACE_PROVIDER_TYPE


def evaluate_contract(contract, products: Sequence[ExternalProduct]):
    """Best match and savings for one contract; either may be None."""
    best = find_best_match(contract, products)
    if best is None:
        return None, None
    return best, compute_savings(contract, best)


def find_optimization_opportunities(
    contracts: Iterable,
    products: Sequence[ExternalProduct],
    reference_date,
    horizon_days: int = 60,
) -> list[OptimizationOpportunity]:
    """
    Savings opportunities for marketplace contracts expiring within the horizon.

    Contracts without a priced match, or where the marketplace is not cheaper,
    produce no opportunity.
    """
    products = list(products)
    opportunities = []
    for candidate in classify_renewals(contracts, reference_date, horizon_days, products):
        if not _is_marketplace(candidate.contract):
            continue
        _, opportunity = evaluate_contract(candidate.contract, products)
        if opportunity is not None:
            opportunities.append(opportunity)
    return opportunities


def total_annual_savings(opportunities: Iterable[OptimizationOpportunity]) -> Decimal:
    return sum((o.annual_savings for o in opportunities), Decimal("0"))


def build_optimization_report(
    tenant,
    reference_date,
    provider: MarketplaceProvider | None = None,
    live_search: bool = True,
) -> OptimizationReport:
    """
    Build the marketplace optimization report for a tenant.

    Uses products synced from the tenant's connected integrations and, when
    ``live_search`` is set and a provider is available, fresh search results
    for each expiring marketplace contract. Live results replace synced
    records with the same identity.

    Args:
        tenant: Tenant to report on
        reference_date: The "today" for the renewal window
        provider: Provider for live search; defaults to the configured provider
        live_search: Whether to query the marketplace per contract

    Returns:
        OptimizationReport; empty when the tenant has no connected integration
    """
    integrations = list(
        MarketplaceIntegration.objects.filter(
            tenant=tenant,
            connection_status=MarketplaceIntegration.ConnectionStatus.CONNECTED,
        )
    )
    report = OptimizationReport(integration_count=len(integrations))
    if not integrations:
        return report

    synced = [
        product.to_external_product()
        for product in MarketplaceProduct.objects.filter(
            tenant=tenant,
            integration__in=integrations,
            status=MarketplaceProduct.Status.ACTIVE,
        )
    ]

    contracts = Contract.objects.filter(
        tenant=tenant,
        status=Contract.Status.ACTIVE,
        provider_type=Contract.MARKETPLACE_PROVIDER_TYPE,
    )
    candidates = classify_renewals(
        contracts, reference_date, tenant.renewal_window, synced
    )
    if not candidates:
        return report

    live_results = {}
    if live_search:
        provider = provider or get_provider(integrations[0])
        if provider is None:
            logger.info("Live marketplace search skipped for tenant %s: no provider configured", tenant.id)
        else:
            outcomes = search_for_contracts(provider, [c.contract for c in candidates])
            live_results = {id(outcome.contract): outcome for outcome in outcomes}

    for candidate in candidates:
        outcome = live_results.get(id(candidate.contract))
        live_products = outcome.products if outcome else []
        for product in live_products:
            if product.integration_id is None:
                product.integration_id = integrations[0].id
        products = deduplicate_products([*synced, *live_products])

        best, opportunity = evaluate_contract(candidate.contract, products)
        if live_products and best is not None and best.monthly_cost is not None:
            candidate.has_aws_optimization = True

        report.recommendations.append(
            ContractRecommendation(
                candidate=candidate,
                products=live_products,
                best_match=best,
                opportunity=opportunity,
                search_error=outcome.error if outcome else None,
            )
        )
        if opportunity is not None:
            report.opportunities.append(opportunity)

    logger.info(
        "Optimization report for tenant %s: %s candidates, %s opportunities",
        tenant.id,
        len(candidates),
        len(report.opportunities),
    )
    return report
