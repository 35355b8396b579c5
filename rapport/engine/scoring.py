"""Contribution and potential scoring.

Contribution is weighted (financial carries half the total), potential
is a plain sum. Both land on the same 0-15 scale and share one class
table.

    contribution = round(2.5*financial + 0.625*(network + trust + emotional + intellectual))
    potential    = personal + resources + network + synergy + system_role

Ratings are expected to be validated (0-3) before they get here; the
scorers do not clamp.

Usage:
    from rapport.engine.scoring import score_contribution, score_potential

    result = score_contribution({"financial": 3, "network": 1})
    result.score, result.score_class   # (8, ScoreClass.B)
"""

import math
from dataclasses import dataclass
from typing import Mapping, Optional

from rapport.db.models import CONTRIBUTION_CRITERIA, POTENTIAL_CRITERIA, ScoreClass
from rapport.engine.rules import DEFAULT_RULES, ClassThresholds, ScoringRules
from rapport.engine.thresholds import resolve_class, thresholds_for_ceiling


@dataclass(frozen=True)
class ScoreResult:
    """Score with its letter class."""

    score: int
    score_class: ScoreClass


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up (2.5 -> 3, 0.125 -> 0.13 at 2 digits).

    Python's round() is banker's rounding (round(2.5) == 2).
    """
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _rating(details: Optional[Mapping[str, float]], key: str) -> float:
    if not details:
        return 0
    return details.get(key) or 0


def weighted_contribution(
    details: Optional[Mapping[str, float]],
    rules: ScoringRules = DEFAULT_RULES,
) -> float:
    """Unrounded weighted contribution total. Missing criteria count as 0."""
    weights = rules.contribution_weights
    return sum(
        _rating(details, criterion) * weights.for_criterion(criterion)
        for criterion in CONTRIBUTION_CRITERIA
    )


def score_contribution(
    details: Optional[Mapping[str, float]],
    rules: ScoringRules = DEFAULT_RULES,
) -> ScoreResult:
    """Score contribution details on the 15-point scale.

    Args:
        details: Criterion ratings (financial, network, trust, emotional, intellectual)
        rules: Scoring constants

    Returns:
        Integer score (rounded half up) and its class
    """
    score = int(round_half_up(weighted_contribution(details, rules)))
    return ScoreResult(
        score=score,
        score_class=resolve_class(score, rules.scale_ceiling, _table_for(rules)),
    )


def score_potential(
    details: Optional[Mapping[str, float]],
    rules: ScoringRules = DEFAULT_RULES,
) -> ScoreResult:
    """Score potential details as an unweighted sum (0-15)."""
    score = int(sum(_rating(details, criterion) for criterion in POTENTIAL_CRITERIA))
    return ScoreResult(
        score=score,
        score_class=resolve_class(score, rules.scale_ceiling, _table_for(rules)),
    )


def resolve_value_category(contribution_class: str, potential_class: str) -> str:
    """Two-letter value category, e.g. "AB". Plain concatenation."""
    return f"{_letter(contribution_class)}{_letter(potential_class)}"


def _letter(value: str) -> str:
    return value.value if isinstance(value, ScoreClass) else str(value)


def _table_for(rules: ScoringRules) -> ClassThresholds:
    return thresholds_for_ceiling(rules.scale_ceiling, rules.fifteen_point, rules.nine_point)
