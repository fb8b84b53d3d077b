"""Relevance scoring between a contract and a marketplace product."""
import json
import logging

logger = logging.getLogger(__name__)

EXACT_MATCH_SCORE = 1.0
CONTAINMENT_SCORE = 0.8
TOKEN_OVERLAP_WEIGHT = 0.6
METADATA_SCORE = 0.2
MIN_TOKEN_LENGTH = 3


def _tokens(text: str) -> list[str]:
    return text.split()


def _metadata_blob(metadata) -> str:
    if not metadata:
        return ""
    try:
        return json.dumps(metadata, default=str, sort_keys=True).lower()
    except (TypeError, ValueError):
        logger.warning("Could not serialize product metadata for scoring")
        return ""


def score_query(query: str, product_name: str, metadata: dict | None = None) -> float:
    """
    Score how well a product name matches a search query.

    Scoring (case-insensitive):
    - identical strings score 1.0
    - one string containing the other adds 0.8
    - each query token longer than two characters that overlaps a product
      token (containment either way) adds its share of 0.6
    - metadata containing the query adds 0.2

    Returns:
        Score in [0, 1]
    """
    query_lower = (query or "").strip().lower()
    name_lower = (product_name or "").strip().lower()
    if not query_lower or not name_lower:
        return 0.0

    if query_lower == name_lower:
        return EXACT_MATCH_SCORE

    score = 0.0

    if query_lower in name_lower or name_lower in query_lower:
        score += CONTAINMENT_SCORE

    query_words = [w for w in _tokens(query_lower) if len(w) >= MIN_TOKEN_LENGTH]
    name_words = _tokens(name_lower)
    if query_words:
        matched = sum(
            1
            for qw in query_words
            if any(nw in qw or qw in nw for nw in name_words)
        )
        score += matched / len(query_words) * TOKEN_OVERLAP_WEIGHT

    if query_lower in _metadata_blob(metadata):
        score += METADATA_SCORE

    return min(score, 1.0)


def contract_query(contract) -> str:
    """Search query for a contract: its name followed by its client."""
    return f"{contract.name or ''} {contract.client or ''}".strip()


def score(contract, product) -> float:
    """
    Score a marketplace product against a contract.

    A product named exactly like the contract (ignoring case and surrounding
    whitespace) scores 1.0; otherwise the name and client are scored as a query.
    """
    name = (contract.name or "").strip().lower()
    if name and name == (product.product_name or "").strip().lower():
        return EXACT_MATCH_SCORE
    return score_query(contract_query(contract), product.product_name, product.metadata)
