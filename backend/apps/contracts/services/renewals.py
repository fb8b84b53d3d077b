"""Renewal window classification.

All functions here are pure: the reference date is always passed in, never
read from the clock.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Sequence

from dateutil.parser import isoparse

from apps.contracts.models import Contract
from apps.marketplace.services.matching import has_priced_match

logger = logging.getLogger(__name__)

HIGH_URGENCY_DAYS = 30
ACTIVE_STATUS = "active"


class Urgency(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


class RenewalSort(str, Enum):
    EXPIRATION = "expiration"
    VALUE = "value"
    URGENCY = "urgency"


@dataclass
class RenewalCandidate:
    """A contract approaching its end date."""

    contract: object
    days_left: int
    urgency: Urgency
    has_aws_optimization: bool = False


@dataclass
class RenewalSummary:
    high: int = 0
    medium: int = 0
    with_optimization: int = 0
    total: int = 0


def to_date(value) -> date | None:
    """Normalize a date, datetime or ISO string to a calendar date; None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return isoparse(value.strip()).date()
        except ValueError:
            return None
    return None


def days_until(end_date, reference_date) -> int | None:
    """Whole days from the reference date to the end date, rounded up."""
    end = to_date(end_date)
    reference = to_date(reference_date)
    if end is None or reference is None:
        return None
    return math.ceil((end - reference) / timedelta(days=1))


def urgency_for(days_left: int) -> Urgency:
    return Urgency.HIGH if days_left <= HIGH_URGENCY_DAYS else Urgency.MEDIUM


def _is_active(contract) -> bool:
    status = getattr(contract, "status", None)
    return str(status.value if isinstance(status, Enum) else status).lower() == ACTIVE_STATUS


def classify_renewals(
    contracts: Iterable,
    reference_date,
    horizon_days: int,
    products: Sequence = (),
) -> list[RenewalCandidate]:
    """
    Select active contracts ending within the horizon and rate their urgency.

    A contract qualifies when its end date is between the reference date and
    ``reference_date + horizon_days`` inclusive. A contract ending on the
    reference date is reported with ``days_left == 0``.

    Args:
        contracts: Contract-like objects with ``status``, ``end_date`` and ``provider_type``
        reference_date: The "today" to measure against
        horizon_days: Size of the window in days
        products: Known marketplace products, used for ``has_aws_optimization``

    Returns:
        Candidates in input order

    Raises:
        ValueError: If reference_date is missing or cannot be parsed as a date
    """
    reference = to_date(reference_date)
    if reference is None:
        raise ValueError(f"Invalid reference date: {reference_date!r}")

    candidates = []
    for contract in contracts:
        if not _is_active(contract):
            continue

        days_left = days_until(contract.end_date, reference)
        if days_left is None:
            logger.warning(
                "Skipping contract %s with unparseable end date %r",
                getattr(contract, "pk", None),
                contract.end_date,
            )
            continue
        if days_left < 0 or days_left > horizon_days:
            continue

        provider_type = getattr(contract, "provider_type", None)
        is_marketplace = provider_type == Contract.MARKETPLACE_PROVIDER_TYPE
        candidates.append(
            RenewalCandidate(
                contract=contract,
                days_left=days_left,
                urgency=urgency_for(days_left),
                has_aws_optimization=bool(
                    products and is_marketplace and has_priced_match(contract, products)
                ),
            )
        )
    return candidates


def _contract_value(candidate: RenewalCandidate) -> Decimal:
    try:
        return Decimal(str(candidate.contract.value or 0))
    except ArithmeticError:
        return Decimal("0")


def sort_candidates(candidates: Iterable[RenewalCandidate], sort_by: str = RenewalSort.EXPIRATION) -> list[RenewalCandidate]:
    """Order renewal candidates by soonest expiration, highest value, or urgency."""
    sort_by = RenewalSort(sort_by)
    if sort_by == RenewalSort.VALUE:
        return sorted(candidates, key=_contract_value, reverse=True)
    if sort_by == RenewalSort.URGENCY:
        return sorted(candidates, key=lambda c: (c.urgency != Urgency.HIGH, c.days_left))
    return sorted(candidates, key=lambda c: c.days_left)


def summarize_renewals(candidates: Iterable[RenewalCandidate]) -> RenewalSummary:
    summary = RenewalSummary()
    for candidate in candidates:
        summary.total += 1
        if candidate.urgency == Urgency.HIGH:
            summary.high += 1
        else:
            summary.medium += 1
        if candidate.has_aws_optimization:
            summary.with_optimization += 1
    return summary
