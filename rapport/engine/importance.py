"""Importance tier and recommended attention level.

Each class letter is worth points (A=4 ... D=1). The two classes'
points are summed: 7+ is tier A, 5+ is tier B, anything else C. The
tier then maps to the attention level the relationship deserves.

Importance has no history: it is recomputed from the two classes on
every recalculation, never nudged up or down.
"""

from dataclasses import dataclass

from rapport.db.models import ImportanceLevel, ScoreClass
from rapport.engine.rules import DEFAULT_RULES, ScoringRules


@dataclass(frozen=True)
class ImportanceResult:
    """Importance tier with its recommended attention level (1-10)."""

    level: ImportanceLevel
    recommended_attention_level: int


def resolve_importance_level(
    contribution_class: str,
    potential_class: str,
    rules: ScoringRules = DEFAULT_RULES,
) -> ImportanceLevel:
    """Sum class points and cut into tiers."""
    table = rules.importance
    points = table.class_points[ScoreClass(contribution_class)] + table.class_points[
        ScoreClass(potential_class)
    ]
    if points >= table.a_min_points:
        return ImportanceLevel.A
    if points >= table.b_min_points:
        return ImportanceLevel.B
    return ImportanceLevel.C


def recommended_attention_level(level: str, rules: ScoringRules = DEFAULT_RULES) -> int:
    """Attention level for a tier. Unrecognized input gets the default (2)."""
    table = rules.importance
    try:
        return table.attention_by_level[ImportanceLevel(level)]
    except (ValueError, KeyError):
        return table.default_attention


def resolve_importance(
    contribution_class: str,
    potential_class: str,
    rules: ScoringRules = DEFAULT_RULES,
) -> ImportanceResult:
    """Resolve tier and recommended attention from the two classes.

    Args:
        contribution_class: Contribution letter class
        potential_class: Potential letter class
        rules: Scoring constants

    Returns:
        ImportanceResult
    """
    level = resolve_importance_level(contribution_class, potential_class, rules)
    return ImportanceResult(
        level=level,
        recommended_attention_level=recommended_attention_level(level, rules),
    )
