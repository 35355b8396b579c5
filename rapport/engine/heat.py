"""Heat index - relationship temperature.

Blends four signals into a 0-1 index:

    R = clamp(1 - days_since / (2 * desired_frequency), 0, 1)   recency
    E = (relationship_energy - 1) / 4                           energy
    Q = response_quality / 3                                    quality
    T = 0.0 falling, 0.5 flat, 1.0 rising                       trend

    heat = 0.4R + 0.3E + 0.2Q + 0.1T

Status buckets (on the unrounded index): >= 0.70 green, >= 0.40
yellow, else red. Then two hard overrides, in this order:

    1. days_since > 3 * frequency                        -> red
    2. days_since <= 0.5 * frequency, energy >= 4,
       quality >= 2                                      -> green

The second is evaluated last and wins when both apply. The reported
index is rounded half up to two decimals.

Usage:
    from rapport.engine.heat import compute_heat, days_since_contact

    days = days_since_contact(contact.last_contact_date, contact.desired_frequency_days)
    result = compute_heat(days, 30, 3, 5, 1)
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from rapport.db.models import HeatStatus
from rapport.engine.rules import DEFAULT_RULES, HeatRules, ScoringRules
from rapport.engine.scoring import round_half_up


@dataclass(frozen=True)
class HeatResult:
    """Rounded heat index with its status."""

    heat_index: float
    heat_status: HeatStatus


def days_since_contact(
    last_contact_date: Optional[date],
    desired_frequency_days: int,
    today: Optional[date] = None,
) -> int:
    """Whole days since the last meaningful contact.

    A contact never reached is treated as exactly one cadence overdue:
    worst-case recency for the formula, not infinity.
    """
    if last_contact_date is None:
        return desired_frequency_days
    today = today or date.today()
    return (today - last_contact_date).days


def raw_heat_index(
    days_since: float,
    desired_frequency_days: float,
    response_quality: float,
    relationship_energy: float,
    attention_trend: int,
    heat: HeatRules = DEFAULT_RULES.heat,
) -> float:
    """Unrounded weighted blend of R, E, Q and T."""
    recency = 1.0 - days_since / (heat.recency_horizon * desired_frequency_days)
    recency = min(1.0, max(0.0, recency))
    energy = (relationship_energy - 1) / 4.0
    quality = response_quality / 3.0
    trend = heat.trend_values.get(attention_trend, heat.trend_default)

    return (
        heat.recency_weight * recency
        + heat.energy_weight * energy
        + heat.quality_weight * quality
        + heat.trend_weight * trend
    )


def bucket_heat(index: float, heat: HeatRules = DEFAULT_RULES.heat) -> HeatStatus:
    """Bucket an index into green/yellow/red, before overrides."""
    if index >= heat.green_at:
        return HeatStatus.GREEN
    if index >= heat.yellow_at:
        return HeatStatus.YELLOW
    return HeatStatus.RED


def apply_overrides(
    status: HeatStatus,
    days_since: float,
    desired_frequency_days: float,
    response_quality: float,
    relationship_energy: float,
    heat: HeatRules = DEFAULT_RULES.heat,
) -> HeatStatus:
    """Apply neglect (red) then recent-engagement (green) overrides."""
    if days_since > heat.neglect_ratio * desired_frequency_days:
        status = HeatStatus.RED

    if (
        days_since <= heat.recent_ratio * desired_frequency_days
        and relationship_energy >= heat.recent_min_energy
        and response_quality >= heat.recent_min_quality
    ):
        status = HeatStatus.GREEN

    return status


def compute_heat(
    days_since_last_contact: float,
    desired_frequency_days: float,
    response_quality: float,
    relationship_energy: float,
    attention_trend: int,
    rules: ScoringRules = DEFAULT_RULES,
) -> HeatResult:
    """Compute heat index and status.

    Args:
        days_since_last_contact: Days since last meaningful contact
        desired_frequency_days: Target cadence (>= 1)
        response_quality: 0-3
        relationship_energy: 1-5
        attention_trend: -1, 0 or 1
        rules: Scoring constants

    Returns:
        HeatResult with index rounded to two decimals
    """
    heat = rules.heat
    index = raw_heat_index(
        days_since_last_contact,
        desired_frequency_days,
        response_quality,
        relationship_energy,
        attention_trend,
        heat,
    )
    status = apply_overrides(
        bucket_heat(index, heat),
        days_since_last_contact,
        desired_frequency_days,
        response_quality,
        relationship_energy,
        heat,
    )
    return HeatResult(heat_index=round_half_up(index, 2), heat_status=status)
