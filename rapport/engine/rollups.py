"""Aggregation roll-ups: child records -> contact criterion ratings.

Two independent roll-ups:

    Purchases (money):
        Sum every amount that is positive and finite, count those
        entries, track the latest purchase date. The total maps to the
        financial rating: 0 -> 0, under 100k -> 1, under 500k -> 2,
        otherwise 3. That rating replaces contribution_details.financial.
        Financial-tagged contribution events with an amount are money
        too and join the same sum.

    Contribution events (non-financial criteria):
        Count events per criterion. A criterion with zero events is reset
        to 0. A criterion with events keeps whatever rating the operator
        set; the count never produces a rating by itself. Deleting the
        last event of a type therefore silently drops that rating.

Usage:
    from rapport.engine.rollups import rollup_purchases, rollup_contributions

    money = rollup_purchases(purchases)
    details = rollup_contributions(events, contact.contribution_details)
"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from rapport.core.logging import get_logger
from rapport.db.models import (
    CONTRIBUTION_CRITERIA,
    NON_FINANCIAL_CRITERIA,
    Contribution,
    CriterionTotals,
    CriterionType,
    Purchase,
)
from rapport.engine.rules import DEFAULT_RULES, FinancialBands, ScoringRules

logger = get_logger(__name__)


@dataclass
class PurchaseRollup:
    """Result of the money roll-up.

    Attributes:
        totals: Sum, count and latest date of the valid amounts
        financial_score: Financial criterion rating 0-3
        excluded: Records whose amount was missing, zero, negative or not finite
    """

    totals: CriterionTotals
    financial_score: int
    excluded: int = 0


@dataclass
class ContributionRollup:
    """Result of the contribution-event roll-up.

    Attributes:
        details: Contribution details after reset-on-zero
        totals: Per-criterion snapshot (amount, count, latest date)
        reset: Criteria that were nonzero and got reset to 0
    """

    details: dict[str, int]
    totals: dict[str, CriterionTotals] = field(default_factory=dict)
    reset: list[str] = field(default_factory=list)


def _valid_amount(amount: Optional[float]) -> bool:
    if amount is None or isinstance(amount, bool):
        return False
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value > 0


def _later(current: Optional[date], candidate: Optional[date]) -> Optional[date]:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def counts_as_money(contribution: Contribution) -> bool:
    """Financial-tagged event that carries an amount."""
    return (
        CriterionType(contribution.criterion_type) is CriterionType.FINANCIAL
        and contribution.amount is not None
    )


def financial_score_for_amount(
    total_amount: float,
    bands: FinancialBands = DEFAULT_RULES.financial_bands,
) -> int:
    """Map a purchase total to the 0-3 financial rating."""
    if total_amount <= 0:
        return 0
    if total_amount < bands.band_2:
        return 1
    if total_amount < bands.band_3:
        return 2
    return 3


def rollup_purchases(
    purchases: Iterable[Purchase],
    contributions: Iterable[Contribution] = (),
    rules: ScoringRules = DEFAULT_RULES,
) -> PurchaseRollup:
    """Aggregate monetary records into the financial rating.

    Args:
        purchases: All purchases of one contact
        contributions: The contact's contribution events; only financial
            ones with an amount are counted here
        rules: Scoring constants

    Returns:
        PurchaseRollup
    """
    total = 0.0
    count = 0
    excluded = 0
    last: Optional[date] = None

    money: list[tuple[Optional[float], Optional[date]]] = [
        (p.amount, p.purchased_at) for p in purchases
    ]
    money.extend((c.amount, c.contributed_at) for c in contributions if counts_as_money(c))

    for amount, when in money:
        last = _later(last, when)
        if _valid_amount(amount):
            total += float(amount)  # type: ignore[arg-type]
            count += 1
        else:
            excluded += 1

    if excluded:
        logger.debug(
            "Excluded invalid amounts from purchase roll-up",
            extra={"context": {"excluded": excluded, "counted": count}},
        )

    return PurchaseRollup(
        totals=CriterionTotals(total_amount=total, count=count, last_date=last),
        financial_score=financial_score_for_amount(total, rules.financial_bands),
        excluded=excluded,
    )


def contribution_totals(events: Iterable[Contribution]) -> dict[str, CriterionTotals]:
    """Per-criterion snapshot of contribution events.

    Every criterion gets an entry, zeroed when it has no events.
    """
    totals = {criterion: CriterionTotals() for criterion in CONTRIBUTION_CRITERIA}
    for event in events:
        bucket = totals[CriterionType(event.criterion_type).value]
        bucket.count += 1
        bucket.last_date = _later(bucket.last_date, event.contributed_at)
        if _valid_amount(event.amount):
            bucket.total_amount += float(event.amount)  # type: ignore[arg-type]
    return totals


def rollup_contributions(
    events: Sequence[Contribution],
    existing_details: Optional[Mapping[str, int]],
) -> ContributionRollup:
    """Apply reset-on-zero to the non-financial criteria.

    Args:
        events: All contribution events of one contact
        existing_details: Persisted contribution details

    Returns:
        ContributionRollup with new details; the input is not modified
    """
    details = {criterion: 0 for criterion in CONTRIBUTION_CRITERIA}
    details.update(existing_details or {})

    totals = contribution_totals(events)
    reset: list[str] = []
    for criterion in NON_FINANCIAL_CRITERIA:
        if totals[criterion].count == 0 and details.get(criterion):
            reset.append(criterion)
        if totals[criterion].count == 0:
            details[criterion] = 0

    if reset:
        logger.debug(
            "Criteria reset after last event removed",
            extra={"context": {"criteria": reset}},
        )

    return ContributionRollup(details=details, totals=totals, reset=reset)
