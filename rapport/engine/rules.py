"""Named scoring constants.

Every weight, threshold, band and override ratio used by the engine is
declared here as a frozen dataclass and passed into the pure functions.
Nothing in the formula modules hard-codes these numbers.

Usage:
    from rapport.engine.rules import DEFAULT_RULES, ScoringRules

    rules = DEFAULT_RULES
    tuned = replace(DEFAULT_RULES, heat=replace(DEFAULT_RULES.heat, green_at=0.75))
"""

from dataclasses import dataclass, field

from rapport.db.models import ImportanceLevel, ScoreClass


@dataclass(frozen=True)
class ClassThresholds:
    """Minimum score for each letter class. Below c_min is D."""

    a_min: float
    b_min: float
    c_min: float


# Current 15-point scale
FIFTEEN_POINT_THRESHOLDS = ClassThresholds(a_min=12, b_min=8, c_min=4)

# Legacy 9-point scale, kept for classes persisted before the 15-point switch
NINE_POINT_THRESHOLDS = ClassThresholds(a_min=7, b_min=5, c_min=2)

CURRENT_SCALE_CEILING = 15


@dataclass(frozen=True)
class ContributionWeights:
    """Per-criterion multipliers.

    Financial carries 50% of the 15-point total (3 x 2.5 = 7.5), each of
    the four others 12.5% (3 x 0.625 = 1.875).
    """

    financial: float = 2.5
    network: float = 0.625
    trust: float = 0.625
    emotional: float = 0.625
    intellectual: float = 0.625

    def for_criterion(self, criterion: str) -> float:
        return float(getattr(self, criterion, 0.0))


@dataclass(frozen=True)
class ImportanceTable:
    """Class points, tier cut-offs and recommended attention per tier."""

    class_points: dict[ScoreClass, int] = field(
        default_factory=lambda: {
            ScoreClass.A: 4,
            ScoreClass.B: 3,
            ScoreClass.C: 2,
            ScoreClass.D: 1,
        }
    )
    a_min_points: int = 7
    b_min_points: int = 5
    attention_by_level: dict[ImportanceLevel, int] = field(
        default_factory=lambda: {
            ImportanceLevel.A: 8,
            ImportanceLevel.B: 5,
            ImportanceLevel.C: 2,
        }
    )
    default_attention: int = 2


@dataclass(frozen=True)
class HeatRules:
    """Heat index weights, buckets and override ratios.

    Attributes:
        recency_weight: Weight of R (recency)
        energy_weight: Weight of E (relationship energy)
        quality_weight: Weight of Q (response quality)
        trend_weight: Weight of T (attention trend)
        recency_horizon: R reaches 0 at this many cadences since contact
        green_at: Minimum index for green
        yellow_at: Minimum index for yellow
        neglect_ratio: Beyond this many cadences status is forced red
        recent_ratio: Within this fraction of a cadence, strong contacts are forced green
        recent_min_energy: Energy needed for the green override
        recent_min_quality: Response quality needed for the green override
        trend_values: T for each attention trend; anything else uses trend_default
        default_frequency_days: Cadence assumed for a contact that has none
    """

    recency_weight: float = 0.4
    energy_weight: float = 0.3
    quality_weight: float = 0.2
    trend_weight: float = 0.1
    recency_horizon: float = 2.0
    green_at: float = 0.70
    yellow_at: float = 0.40
    neglect_ratio: float = 3.0
    recent_ratio: float = 0.5
    recent_min_energy: int = 4
    recent_min_quality: int = 2
    trend_values: dict[int, float] = field(default_factory=lambda: {-1: 0.0, 1: 1.0})
    trend_default: float = 0.5
    default_frequency_days: int = 30


@dataclass(frozen=True)
class FinancialBands:
    """Purchase total -> financial criterion rating.

    0 or less -> 0; below band_2 -> 1; below band_3 -> 2; else 3.
    """

    band_2: float = 100_000
    band_3: float = 500_000


@dataclass(frozen=True)
class ScoringRules:
    """All engine constants, injected as one bundle."""

    fifteen_point: ClassThresholds = FIFTEEN_POINT_THRESHOLDS
    nine_point: ClassThresholds = NINE_POINT_THRESHOLDS
    scale_ceiling: int = CURRENT_SCALE_CEILING
    contribution_weights: ContributionWeights = field(default_factory=ContributionWeights)
    importance: ImportanceTable = field(default_factory=ImportanceTable)
    heat: HeatRules = field(default_factory=HeatRules)
    financial_bands: FinancialBands = field(default_factory=FinancialBands)


DEFAULT_RULES = ScoringRules()
