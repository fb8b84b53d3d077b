"""Select the marketplace product that corresponds to a contract."""
from typing import Iterable, Optional

from apps.marketplace.services.catalog import ExternalProduct
from apps.marketplace.services.scoring import MIN_TOKEN_LENGTH, score


def _significant_words(text: str) -> list[str]:
    return [w for w in (text or "").lower().split(" ") if len(w) >= MIN_TOKEN_LENGTH]


def passes_match_gate(contract, product: ExternalProduct) -> bool:
    """
    Whether a product plausibly corresponds to the contract.

    True if any contract-name word appears in the product name, or any client
    word appears in the vendor name. Words of two characters or fewer are ignored.
    """
    product_name = (product.product_name or "").lower()
    vendor = (product.vendor or "").lower()

    if any(word in product_name for word in _significant_words(contract.name)):
        return True
    return any(word in vendor for word in _significant_words(contract.client))


def _rank_score(contract, product: ExternalProduct) -> float:
    if product.match_score_hint is not None:
        return product.match_score_hint
    return score(contract, product)


def rank_candidates(contract, products: Iterable[ExternalProduct]) -> list[tuple[float, ExternalProduct]]:
    """Gate products for the contract and order them by relevance, highest first."""
    ranked = [
        (_rank_score(contract, product), product)
        for product in products
        if passes_match_gate(contract, product)
    ]
    # sorted() is stable: equal scores keep input order
    return sorted(ranked, key=lambda item: item[0], reverse=True)


def find_best_match(contract, products: Iterable[ExternalProduct]) -> Optional[ExternalProduct]:
    """
    Find the best marketplace product for a contract.

    Returns:
        The top-ranked product, or None when no product passes the gate or the
        top-ranked product has no known monthly cost.
    """
    ranked = rank_candidates(contract, products)
    if not ranked:
        return None
    best = ranked[0][1]
    if best.monthly_cost is None:
        return None
    return best


def has_priced_match(contract, products: Iterable[ExternalProduct]) -> bool:
    """Whether any gated product for the contract carries a real monthly cost."""
    return any(
        product.monthly_cost is not None
        for product in products
        if passes_match_gate(contract, product)
    )
