"""Marketplace search: ranked catalog search and per-contract fan-out."""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional

from django.conf import settings

from apps.marketplace.services.catalog import (
    ExternalProduct,
    ProductNormalizationError,
    normalize_product,
)
from apps.marketplace.services.providers import MarketplaceProvider
from apps.marketplace.services.scoring import contract_query, score_query

logger = logging.getLogger(__name__)


@dataclass
class ContractSearchOutcome:
    """Search result for a single contract."""

    contract: object
    query: str
    products: list[ExternalProduct] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def search_marketplace(
    provider: MarketplaceProvider,
    query: str,
    product_type: str = "All",
    max_results: int = 10,
    min_score: float = 0.3,
) -> list[ExternalProduct]:
    """
    Search the marketplace and rank the results against the query.

    Records that cannot be normalized are skipped. Products scoring at or
    below ``min_score`` are dropped; the rest are sorted by score, highest first.

    Raises:
        Whatever the provider raises; callers decide how to isolate failures.
    """
    products = []
    for raw in provider.search(query, product_type=product_type, max_results=max_results):
        try:
            product = normalize_product(raw)
        except ProductNormalizationError as e:
            logger.warning("Skipping marketplace search result: %s", e)
            continue
        product.match_score_hint = score_query(query, product.product_name, product.metadata)
        if product.match_score_hint > min_score:
            products.append(product)

    products.sort(key=lambda p: p.match_score_hint, reverse=True)
    return products[:max_results]


def _search_one(provider, contract, max_results, min_score) -> ContractSearchOutcome:
    query = contract_query(contract)
    try:
        products = search_marketplace(
            provider, query, max_results=max_results, min_score=min_score
        )
    except Exception as e:
        logger.error("Marketplace search failed for contract %s: %s", getattr(contract, "pk", None), e)
        return ContractSearchOutcome(contract=contract, query=query, error=str(e) or e.__class__.__name__)

    if not products:
        logger.info("No marketplace results for contract %s (%s)", getattr(contract, "pk", None), query)
    return ContractSearchOutcome(contract=contract, query=query, products=products)


def search_for_contracts(
    provider: MarketplaceProvider,
    contracts: Iterable,
    max_results: int | None = None,
    min_score: float | None = None,
    max_workers: int | None = None,
) -> list[ContractSearchOutcome]:
    """
    Search the marketplace for every contract concurrently.

    Each search is isolated: a failing search produces an outcome with an
    ``error`` and no products, and does not affect the others.

    Returns:
        One outcome per contract, in input order
    """
    contracts = list(contracts)
    if not contracts:
        return []

    if max_results is None:
        max_results = settings.MARKETPLACE_SEARCH_MAX_RESULTS
    if min_score is None:
        min_score = settings.MARKETPLACE_SEARCH_MIN_SCORE
    if max_workers is None:
        max_workers = settings.MARKETPLACE_SEARCH_WORKERS

    workers = max(1, min(max_workers, len(contracts)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(
            executor.map(
                lambda contract: _search_one(provider, contract, max_results, min_score),
                contracts,
            )
        )
