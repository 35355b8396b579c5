"""Score -> letter class lookup.

Two tables exist: the current 15-point one and the legacy 9-point one.
Classes persisted under either must stay reproducible, so both are
kept exactly as they were.
"""

from typing import Optional

from rapport.db.models import ScoreClass
from rapport.engine.rules import (
    CURRENT_SCALE_CEILING,
    FIFTEEN_POINT_THRESHOLDS,
    NINE_POINT_THRESHOLDS,
    ClassThresholds,
)


def thresholds_for_ceiling(
    scale_ceiling: float,
    fifteen_point: ClassThresholds = FIFTEEN_POINT_THRESHOLDS,
    nine_point: ClassThresholds = NINE_POINT_THRESHOLDS,
) -> ClassThresholds:
    """Pick the threshold table for a scale ceiling.

    Only a ceiling of exactly 15 uses the 15-point table; every other
    ceiling falls back to the legacy table.
    """
    if scale_ceiling == CURRENT_SCALE_CEILING:
        return fifteen_point
    return nine_point


def resolve_class(
    score: float,
    scale_ceiling: float = CURRENT_SCALE_CEILING,
    thresholds: Optional[ClassThresholds] = None,
) -> ScoreClass:
    """Map a score to A/B/C/D.

    Args:
        score: Numeric score
        scale_ceiling: Maximum attainable score of the active rule generation
        thresholds: Explicit table, overriding the ceiling lookup

    Returns:
        Letter class
    """
    table = thresholds or thresholds_for_ceiling(scale_ceiling)
    if score >= table.a_min:
        return ScoreClass.A
    if score >= table.b_min:
        return ScoreClass.B
    if score >= table.c_min:
        return ScoreClass.C
    return ScoreClass.D


def scaled_thresholds(scale_ceiling: float) -> ClassThresholds:
    """Derive a table for an arbitrary ceiling by scaling the 15-point one.

    Opt-in only: resolve_class never calls it, and every ceiling other
    than 15 resolves to the legacy 9-point table. Pass the result as
    resolve_class(score, ceiling, thresholds=scaled_thresholds(ceiling))
    to classify on a proportional scale.
    """
    factor = scale_ceiling / CURRENT_SCALE_CEILING
    return ClassThresholds(
        a_min=FIFTEEN_POINT_THRESHOLDS.a_min * factor,
        b_min=FIFTEEN_POINT_THRESHOLDS.b_min * factor,
        c_min=FIFTEEN_POINT_THRESHOLDS.c_min * factor,
    )
