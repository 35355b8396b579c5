"""Data models and enumerations for Rapport.

All enums stored as TEXT in SQLite.
Dataclasses use frozen=False for mutability during processing; the
engine never mutates its inputs and returns new instances instead.

This module defines:
    - Enumerations for all categorical fields
    - Dataclasses for database records
    - Boundary validation (the engine assumes validated input)
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from rapport.core.exceptions import ValidationError

# =============================================================================
# ENUMERATIONS
# =============================================================================


class ScoreClass(str, Enum):
    """Letter class of a contribution or potential score."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"


class ImportanceLevel(str, Enum):
    """Coarse importance tier derived from the two score classes."""

    A = "A"
    B = "B"
    C = "C"


class HeatStatus(str, Enum):
    """Bucketed relationship temperature.

    Values:
        GREEN: Warm, nothing to do
        YELLOW: Cooling, worth a touch soon
        RED: Cold or severely overdue
    """

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class CriterionType(str, Enum):
    """Contribution criterion a purchase or contribution event counts toward."""

    FINANCIAL = "financial"
    NETWORK = "network"
    TRUST = "trust"
    EMOTIONAL = "emotional"
    INTELLECTUAL = "intellectual"


class DetailsGeneration(str, Enum):
    """Historical shape and scale of contribution_details.

    Values:
        LEGACY_9: {financial, network, trust}, unweighted sum, 9-point scale
        TRIAD_15: {financial, network, trust}, weighted, 15-point scale
        PENTAD_15: current five criteria, weighted, 15-point scale
    """

    LEGACY_9 = "legacy_9"
    TRIAD_15 = "triad_15"
    PENTAD_15 = "pentad_15"

    @property
    def criteria(self) -> tuple[str, ...]:
        """Criterion keys present in this generation."""
        if self is DetailsGeneration.PENTAD_15:
            return CONTRIBUTION_CRITERIA
        return ("financial", "network", "trust")

    @property
    def scale_ceiling(self) -> int:
        """Maximum attainable score under this generation's rule."""
        return 9 if self is DetailsGeneration.LEGACY_9 else 15


CURRENT_GENERATION = DetailsGeneration.PENTAD_15


class InteractionType(str, Enum):
    """Kind of interaction logged against a contact."""

    CALL = "call"
    MEETING = "meeting"
    MESSAGE = "message"
    EVENT = "event"
    GIFT = "gift"
    INTRO = "intro"
    OTHER = "other"


class InteractionChannel(str, Enum):
    """Channel an interaction happened through."""

    PHONE = "phone"
    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    OFFLINE = "offline"
    OTHER = "other"


# =============================================================================
# CRITERION KEYS
# =============================================================================

CONTRIBUTION_CRITERIA: tuple[str, ...] = (
    CriterionType.FINANCIAL.value,
    CriterionType.NETWORK.value,
    CriterionType.TRUST.value,
    CriterionType.EMOTIONAL.value,
    CriterionType.INTELLECTUAL.value,
)

# Criteria whose rating is operator-set and only reset by the event roll-up
NON_FINANCIAL_CRITERIA: tuple[str, ...] = CONTRIBUTION_CRITERIA[1:]

POTENTIAL_CRITERIA: tuple[str, ...] = (
    "personal",
    "resources",
    "network",
    "synergy",
    "system_role",
)


def empty_contribution_details() -> dict[str, int]:
    """Return a zeroed current-generation contribution record."""
    return {key: 0 for key in CONTRIBUTION_CRITERIA}


def empty_potential_details() -> dict[str, int]:
    """Return a zeroed potential record."""
    return {key: 0 for key in POTENTIAL_CRITERIA}


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass
class CriterionTotals:
    """Aggregation snapshot for one criterion.

    Attributes:
        total_amount: Sum of valid (positive, finite) amounts
        count: Number of records counted
        last_date: Latest record date
    """

    total_amount: float = 0.0
    count: int = 0
    last_date: Optional[date] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_amount": self.total_amount,
            "count": self.count,
            "last_date": self.last_date.isoformat() if self.last_date else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CriterionTotals":
        last = data.get("last_date")
        return cls(
            total_amount=float(data.get("total_amount") or 0.0),
            count=int(data.get("count") or 0),
            last_date=date.fromisoformat(last) if last else None,
        )


@dataclass
class Contact:
    """Contact record, the aggregate root of scoring.

    Identity fields are opaque to the engine. Fields marked derived are
    written only by the recalculation cascade.

    Attributes:
        id: Primary key
        team_id: Owning team (opaque)
        full_name: Display name
        short_name: Nickname
        email: Email address
        phone: Phone number
        tags: Free-form tags
        role_tags: Relationship roles (family, partner, investor, ...)
        contribution_details: Criterion ratings 0-3
        details_generation: Shape/scale generation of contribution_details
        potential_details: Potential ratings 0-3
        contribution_score: Derived weighted score 0-15
        contribution_class: Derived letter class
        potential_score: Derived unweighted score 0-15
        potential_class: Derived letter class
        value_category: Derived two-letter code
        importance_level: Derived tier
        recommended_attention_level: Derived 1-10
        attention_level: User-set 1-10
        desired_frequency_days: Target contact cadence in days (None until assigned)
        last_contact_date: Derived latest meaningful interaction date
        response_quality: User-set 0-3
        relationship_energy: User-set 1-5
        attention_trend: User-set -1, 0 or 1
        heat_index: Derived 0-1
        heat_status: Derived bucket
        purchase_totals: Derived purchase aggregation
        contribution_totals: Derived per-criterion aggregation
        created_at: Record creation time
        updated_at: Last update time
    """

    id: Optional[int] = None
    team_id: Optional[str] = None
    full_name: str = ""
    short_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    role_tags: list[str] = field(default_factory=list)

    contribution_details: dict[str, int] = field(default_factory=empty_contribution_details)
    details_generation: DetailsGeneration = CURRENT_GENERATION
    potential_details: dict[str, int] = field(default_factory=empty_potential_details)

    contribution_score: int = 0
    contribution_class: ScoreClass = ScoreClass.D
    potential_score: int = 0
    potential_class: ScoreClass = ScoreClass.D
    value_category: str = "DD"
    importance_level: ImportanceLevel = ImportanceLevel.C
    recommended_attention_level: int = 2

    attention_level: int = 1
    desired_frequency_days: Optional[int] = None
    last_contact_date: Optional[date] = None
    response_quality: int = 2
    relationship_energy: int = 3
    attention_trend: int = 0

    heat_index: float = 0.5
    heat_status: HeatStatus = HeatStatus.YELLOW

    purchase_totals: Optional[CriterionTotals] = None
    contribution_totals: dict[str, CriterionTotals] = field(default_factory=dict)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        """Return short name if set, else full name."""
        return self.short_name or self.full_name


@dataclass
class Interaction:
    """Interaction log entry.

    Only meaningful interactions move the last-contact clock.
    """

    id: Optional[int] = None
    contact_id: int = 0
    date: Optional[date] = None
    type: InteractionType = InteractionType.OTHER
    channel: InteractionChannel = InteractionChannel.OTHER
    note: Optional[str] = None
    is_meaningful: bool = False
    created_at: Optional[datetime] = None


@dataclass
class Purchase:
    """Purchase made by a contact. Feeds the financial roll-up."""

    id: Optional[int] = None
    contact_id: int = 0
    product_name: str = ""
    category: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "RUB"
    purchased_at: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Contribution:
    """Typed contribution event (intro, advice, support, investment...).

    amount is None for non-monetary contributions.
    """

    id: Optional[int] = None
    contact_id: int = 0
    criterion_type: CriterionType = CriterionType.NETWORK
    title: str = ""
    amount: Optional[float] = None
    currency: Optional[str] = None
    contributed_at: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


# =============================================================================
# BOUNDARY VALIDATION
# =============================================================================

# field -> (min, max); None means unbounded
_FIELD_RANGES: dict[str, tuple[Optional[int], Optional[int]]] = {
    "attention_level": (1, 10),
    "desired_frequency_days": (1, None),
    "response_quality": (0, 3),
    "relationship_energy": (1, 5),
    "attention_trend": (-1, 1),
}


def _check_rating(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0 or value > 3:
        raise ValidationError(f"{name} must be between 0 and 3, got {value}")


def _check_date(name: str, value: Any) -> None:
    # datetime is a date subclass but cannot be subtracted from a date
    if value is None:
        return
    if isinstance(value, datetime) or not isinstance(value, date):
        raise ValidationError(f"{name} must be a date, got {value!r}")


def validate_details(
    details: Mapping[str, Any],
    allowed: tuple[str, ...],
    label: str,
) -> None:
    """Validate a (possibly partial) criterion rating record.

    Args:
        details: Ratings keyed by criterion
        allowed: Known criterion keys
        label: Record name used in error messages

    Raises:
        ValidationError: On unknown keys or ratings outside 0-3
    """
    for key, value in details.items():
        if key not in allowed:
            raise ValidationError(f"Unknown {label} criterion: {key}")
        _check_rating(f"{label}.{key}", value)


def validate_contact_fields(values: Mapping[str, Any]) -> None:
    """Validate user-set scoring inputs present in a change set.

    Keys that are absent are not checked, so this works for both full
    records and partial updates.

    Raises:
        ValidationError: If any present value is out of range
    """
    if "contribution_details" in values and values["contribution_details"] is not None:
        validate_details(
            values["contribution_details"], CONTRIBUTION_CRITERIA, "contribution_details"
        )
    if "potential_details" in values and values["potential_details"] is not None:
        validate_details(values["potential_details"], POTENTIAL_CRITERIA, "potential_details")

    for name, (low, high) in _FIELD_RANGES.items():
        if name not in values:
            continue
        value = values[name]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer, got {value!r}")
        if low is not None and value < low:
            raise ValidationError(f"{name} must be at least {low}, got {value}")
        if high is not None and value > high:
            raise ValidationError(f"{name} must be at most {high}, got {value}")

    if "last_contact_date" in values:
        _check_date("last_contact_date", values["last_contact_date"])


def validate_contact(contact: Contact) -> None:
    """Validate a full contact before it enters the engine.

    Legacy-generation details are checked against their own criteria.

    Raises:
        ValidationError: If the contact cannot be scored
    """
    if not contact.full_name or not contact.full_name.strip():
        raise ValidationError("full_name is required")
    validate_details(
        contact.contribution_details,
        contact.details_generation.criteria,
        "contribution_details",
    )
    values: dict[str, Any] = {
        "potential_details": contact.potential_details,
        "attention_level": contact.attention_level,
        "response_quality": contact.response_quality,
        "relationship_energy": contact.relationship_energy,
        "attention_trend": contact.attention_trend,
    }
    if contact.desired_frequency_days is not None:
        values["desired_frequency_days"] = contact.desired_frequency_days
    values["last_contact_date"] = contact.last_contact_date
    validate_contact_fields(values)
