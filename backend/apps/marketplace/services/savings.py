"""Savings estimate for moving a contract to a marketplace offering."""
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from apps.marketplace.services.catalog import ExternalProduct

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = Decimal("12")
CENTS = Decimal("0.01")


@dataclass
class OptimizationOpportunity:
    """A contract that would be cheaper on the marketplace."""

    contract: object
    matched_product: ExternalProduct
    current_monthly_cost: Decimal
    aws_monthly_cost: Decimal
    monthly_savings: Decimal
    annual_savings: Decimal
    savings_percentage: Decimal
    has_direct_match: bool = True


def _contract_value(contract) -> Optional[Decimal]:
    value = contract.value
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def compute_savings(contract, matched: ExternalProduct) -> Optional[OptimizationOpportunity]:
    """
    Estimate savings of a matched marketplace product against the contract.

    The contract value is treated as a twelve month spend regardless of the
    actual contract length.

    Returns:
        OptimizationOpportunity, or None when the product has no monthly cost,
        the contract value is missing or not positive, or nothing would be saved.
    """
    if matched is None or matched.monthly_cost is None:
        return None

    value = _contract_value(contract)
    if value is None or value <= 0:
        logger.debug("Skipping savings for contract %s: no usable value", getattr(contract, "pk", None))
        return None

    current_monthly = value / MONTHS_PER_YEAR
    aws_monthly = Decimal(matched.monthly_cost)
    monthly_savings = current_monthly - aws_monthly
    if monthly_savings <= 0:
        return None

    percentage = monthly_savings / current_monthly * 100

    return OptimizationOpportunity(
        contract=contract,
        matched_product=matched,
        current_monthly_cost=current_monthly.quantize(CENTS, rounding=ROUND_HALF_UP),
        aws_monthly_cost=aws_monthly.quantize(CENTS, rounding=ROUND_HALF_UP),
        monthly_savings=monthly_savings.quantize(CENTS, rounding=ROUND_HALF_UP),
        annual_savings=(monthly_savings * MONTHS_PER_YEAR).quantize(CENTS, rounding=ROUND_HALF_UP),
        savings_percentage=percentage.quantize(CENTS, rounding=ROUND_HALF_UP),
    )
