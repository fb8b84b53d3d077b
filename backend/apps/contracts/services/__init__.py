"""Contract services."""

from .renewals import (
    RenewalCandidate,
    RenewalSort,
    RenewalSummary,
    Urgency,
    classify_renewals,
    days_until,
    sort_candidates,
    summarize_renewals,
)

__all__ = [
    "RenewalCandidate",
    "RenewalSort",
    "RenewalSummary",
    "Urgency",
    "classify_renewals",
    "days_until",
    "sort_candidates",
    "summarize_renewals",
]
