"""Recalculation cascade - which stages re-run for which change.

Every change to a contact or its child records arrives as an event.
The event kind selects a fixed stage plan from STAGE_PLAN; the pipeline
runs those stages in canonical order against a private copy of the
persisted contact and returns the new record. Nothing here touches
storage: the caller reads state, builds the event and writes back.

    Event                 Stages
    ContactCreated        scoring, category, importance, heat
    ContactEdited         merge, scoring, category, importance, heat
    InteractionAdded      last_contact, heat
    InteractionRemoved    last_contact, heat
    PurchasesChanged      purchase_rollup, scoring, category, importance, heat
    ContributionsChanged  contribution_rollup, scoring, category, importance, heat
                          (plus purchase_rollup when a monetary financial
                          event was involved)
    FullRefresh           last_contact, scoring, category, importance, heat

Each roll-up only runs for its own kind of record, so ratings set by
hand on the other criteria survive a purchase or contribution change.

Records stored in an older details generation are migrated first, and
a migration always pulls the scoring chain into the plan.

A missing contact is not an error: recalculate_contact(None, event)
returns None for every event except ContactCreated.

Usage:
    from rapport.engine.recalculation import ContactEdited, recalculate_contact

    result = recalculate_contact(contact, ContactEdited({"potential_details": {"synergy": 3}}))
    if result:
        db.save_derived(result.contact)
"""

import copy
from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Any, Callable, ClassVar, Mapping, Optional, Sequence, Union

from rapport.core.logging import get_logger
from rapport.db.models import (
    CURRENT_GENERATION,
    Contact,
    Contribution,
    Interaction,
    Purchase,
    ScoreClass,
)
from rapport.engine.heat import compute_heat, days_since_contact
from rapport.engine.importance import resolve_importance
from rapport.engine.migration import MigrationResult, migrate_contribution_details
from rapport.engine.rollups import rollup_contributions, rollup_purchases
from rapport.engine.rules import DEFAULT_RULES, ScoringRules
from rapport.engine.scoring import (
    resolve_value_category,
    score_contribution,
    score_potential,
)

logger = get_logger(__name__)


# =============================================================================
# STAGES AND EVENTS
# =============================================================================


class Stage(str, Enum):
    """Pipeline stages, declared in the order they run."""

    MERGE = "merge"
    LAST_CONTACT = "last_contact"
    PURCHASE_ROLLUP = "purchase_rollup"
    CONTRIBUTION_ROLLUP = "contribution_rollup"
    SCORING = "scoring"
    CATEGORY = "category"
    IMPORTANCE = "importance"
    HEAT = "heat"


class EventKind(str, Enum):
    """Kinds of change that trigger a recalculation."""

    CONTACT_CREATED = "contact_created"
    CONTACT_EDITED = "contact_edited"
    INTERACTION_ADDED = "interaction_added"
    INTERACTION_REMOVED = "interaction_removed"
    PURCHASES_CHANGED = "purchases_changed"
    CONTRIBUTIONS_CHANGED = "contributions_changed"
    FULL_REFRESH = "full_refresh"


SCORING_CHAIN: tuple[Stage, ...] = (
    Stage.SCORING,
    Stage.CATEGORY,
    Stage.IMPORTANCE,
    Stage.HEAT,
)

STAGE_PLAN: dict[EventKind, tuple[Stage, ...]] = {
    EventKind.CONTACT_CREATED: SCORING_CHAIN,
    EventKind.CONTACT_EDITED: (Stage.MERGE,) + SCORING_CHAIN,
    EventKind.INTERACTION_ADDED: (Stage.LAST_CONTACT, Stage.HEAT),
    EventKind.INTERACTION_REMOVED: (Stage.LAST_CONTACT, Stage.HEAT),
    EventKind.PURCHASES_CHANGED: (Stage.PURCHASE_ROLLUP,) + SCORING_CHAIN,
    EventKind.CONTRIBUTIONS_CHANGED: (Stage.CONTRIBUTION_ROLLUP,) + SCORING_CHAIN,
    EventKind.FULL_REFRESH: (Stage.LAST_CONTACT,) + SCORING_CHAIN,
}

# Written only by the pipeline; a change set cannot set them directly
DERIVED_FIELDS: frozenset[str] = frozenset(
    {
        "contribution_score",
        "contribution_class",
        "potential_score",
        "potential_class",
        "value_category",
        "importance_level",
        "recommended_attention_level",
        "heat_index",
        "heat_status",
        "purchase_totals",
        "contribution_totals",
        "details_generation",
    }
)

# Never taken from a change set
_IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})

_DETAIL_FIELDS = ("contribution_details", "potential_details")


@dataclass(frozen=True)
class ContactCreated:
    """A new contact with its initial details."""

    contact: Contact
    kind: ClassVar[EventKind] = EventKind.CONTACT_CREATED


@dataclass(frozen=True)
class ContactEdited:
    """A partial update. Detail records are merged per key."""

    changes: Mapping[str, Any]
    kind: ClassVar[EventKind] = EventKind.CONTACT_EDITED


@dataclass(frozen=True)
class InteractionAdded:
    """An interaction was logged."""

    interaction: Interaction
    kind: ClassVar[EventKind] = EventKind.INTERACTION_ADDED


@dataclass(frozen=True)
class InteractionRemoved:
    """An interaction was deleted; carries the interactions that remain."""

    remaining: Sequence[Interaction] = ()
    kind: ClassVar[EventKind] = EventKind.INTERACTION_REMOVED


@dataclass(frozen=True)
class PurchasesChanged:
    """A purchase was created, edited or deleted.

    Carries the full current purchase list, plus the contribution events
    so monetary financial events stay in the money sum.
    """

    purchases: Sequence[Purchase] = ()
    contributions: Sequence[Contribution] = ()
    kind: ClassVar[EventKind] = EventKind.PURCHASES_CHANGED


@dataclass(frozen=True)
class ContributionsChanged:
    """A contribution event was created, edited or deleted.

    Carries the full current lists after the change. affects_money is set
    when the changed event is financial and carries an amount (before or
    after the change); only then is the money roll-up re-run.
    """

    contributions: Sequence[Contribution] = ()
    purchases: Sequence[Purchase] = ()
    affects_money: bool = False
    kind: ClassVar[EventKind] = EventKind.CONTRIBUTIONS_CHANGED


@dataclass(frozen=True)
class FullRefresh:
    """Re-derive everything from the contact's interactions."""

    interactions: Sequence[Interaction] = ()
    kind: ClassVar[EventKind] = EventKind.FULL_REFRESH


Event = Union[
    ContactCreated,
    ContactEdited,
    InteractionAdded,
    InteractionRemoved,
    PurchasesChanged,
    ContributionsChanged,
    FullRefresh,
]


@dataclass
class Recalculation:
    """Outcome of one recalculation.

    Attributes:
        contact: The new full contact record
        stages: Stages that ran, in order
        changed_fields: Fields whose values differ from the input record
        migration: Set when the details were migrated from an older generation
    """

    contact: Contact
    stages: tuple[Stage, ...]
    changed_fields: frozenset[str] = field(default_factory=frozenset)
    migration: Optional[MigrationResult] = None

    @property
    def class_shift(self) -> Optional[tuple[ScoreClass, ScoreClass]]:
        """(old, new) contribution class when migration moved it, else None."""
        if self.migration is None:
            return None
        old = self.migration.previous_class
        new = ScoreClass(self.contact.contribution_class)
        return (old, new) if old is not new else None

    def derived_values(self) -> dict[str, Any]:
        """Derived fields plus details, ready for write-back."""
        names = DERIVED_FIELDS | set(_DETAIL_FIELDS) | {"last_contact_date"}
        return {name: getattr(self.contact, name) for name in sorted(names)}


def plan_stages(event: Event, migrated: bool = False) -> tuple[Stage, ...]:
    """Stages to run for an event, in canonical order.

    Args:
        event: The triggering event
        migrated: Whether the details were just migrated, which forces
            the scoring chain

    Returns:
        Ordered tuple of stages
    """
    wanted = set(STAGE_PLAN[event.kind])
    if isinstance(event, ContributionsChanged) and event.affects_money:
        wanted.add(Stage.PURCHASE_ROLLUP)
    if migrated:
        wanted.update(SCORING_CHAIN)
    return tuple(stage for stage in Stage if stage in wanted)


def latest_meaningful_date(interactions: Sequence[Interaction]) -> Optional[date]:
    """Max date among meaningful interactions, or None."""
    dates = [i.date for i in interactions if i.is_meaningful and i.date is not None]
    return max(dates) if dates else None


# =============================================================================
# PIPELINE
# =============================================================================


class RecalculationPipeline:
    """Runs the stage plan for one event against one contact.

    Attributes:
        rules: Scoring constants
        today: Reference date for recency (defaults to date.today() per run)
    """

    def __init__(self, rules: ScoringRules = DEFAULT_RULES, today: Optional[date] = None):
        self.rules = rules
        self.today = today
        self._handlers: dict[Stage, Callable[[Contact, Event], None]] = {
            Stage.MERGE: self._merge,
            Stage.LAST_CONTACT: self._last_contact,
            Stage.PURCHASE_ROLLUP: self._purchase_rollup,
            Stage.CONTRIBUTION_ROLLUP: self._contribution_rollup,
            Stage.SCORING: self._scoring,
            Stage.CATEGORY: self._category,
            Stage.IMPORTANCE: self._importance,
            Stage.HEAT: self._heat,
        }

    def run(self, existing: Optional[Contact], event: Event) -> Optional[Recalculation]:
        """Recalculate a contact for an event.

        Args:
            existing: Persisted contact, or None if it does not exist
            event: The triggering event

        Returns:
            Recalculation, or None when there is nothing to recalculate
        """
        if isinstance(event, ContactCreated):
            base = event.contact
        elif existing is None:
            logger.debug(
                "Recalculation skipped, contact not found",
                extra={"context": {"event": event.kind.value}},
            )
            return None
        else:
            base = existing

        contact = copy.deepcopy(base)
        migration = None
        if contact.details_generation is not CURRENT_GENERATION:
            migration = migrate_contribution_details(
                contact.contribution_details, contact.details_generation, self.rules
            )
            contact.contribution_details = migration.details
            contact.details_generation = CURRENT_GENERATION

        stages = plan_stages(event, migrated=migration is not None)
        for stage in stages:
            self._handlers[stage](contact, event)

        changed = frozenset(
            f.name for f in fields(Contact) if getattr(base, f.name) != getattr(contact, f.name)
        )

        logger.debug(
            "Contact recalculated",
            extra={
                "context": {
                    "contact_id": contact.id,
                    "event": event.kind.value,
                    "stages": [s.value for s in stages],
                    "changed": sorted(changed),
                }
            },
        )
        result = Recalculation(
            contact=contact,
            stages=stages,
            changed_fields=changed,
            migration=migration,
        )
        if result.class_shift is not None:
            old, new = result.class_shift
            logger.info(
                "Contribution class changed by migration",
                extra={
                    "context": {
                        "contact_id": contact.id,
                        "from_generation": migration.source.value,
                        "previous_class": old.value,
                        "contribution_class": new.value,
                    }
                },
            )
        return result

    # -------------------------------------------------------------------------
    # Stage handlers (mutate the private working copy)
    # -------------------------------------------------------------------------

    def _merge(self, contact: Contact, event: Event) -> None:
        assert isinstance(event, ContactEdited)
        known = {f.name for f in fields(Contact)}
        ignored: list[str] = []

        for key, value in event.changes.items():
            if key in _DETAIL_FIELDS:
                merged = dict(getattr(contact, key) or {})
                merged.update(value or {})
                setattr(contact, key, merged)
            elif key in known and key not in DERIVED_FIELDS and key not in _IMMUTABLE_FIELDS:
                setattr(contact, key, value)
            else:
                ignored.append(key)

        if ignored:
            logger.debug(
                "Ignored keys in contact change set",
                extra={"context": {"contact_id": contact.id, "keys": sorted(ignored)}},
            )

    def _last_contact(self, contact: Contact, event: Event) -> None:
        if isinstance(event, InteractionAdded):
            interaction = event.interaction
            if not interaction.is_meaningful or interaction.date is None:
                return
            current = contact.last_contact_date
            if current is None or interaction.date > current:
                contact.last_contact_date = interaction.date
        elif isinstance(event, InteractionRemoved):
            contact.last_contact_date = latest_meaningful_date(event.remaining)
        elif isinstance(event, FullRefresh):
            contact.last_contact_date = latest_meaningful_date(event.interactions)

    def _purchase_rollup(self, contact: Contact, event: Event) -> None:
        assert isinstance(event, (PurchasesChanged, ContributionsChanged))
        rollup = rollup_purchases(event.purchases, event.contributions, self.rules)
        contact.purchase_totals = rollup.totals
        details = dict(contact.contribution_details)
        details["financial"] = rollup.financial_score
        contact.contribution_details = details

    def _contribution_rollup(self, contact: Contact, event: Event) -> None:
        assert isinstance(event, ContributionsChanged)
        rollup = rollup_contributions(event.contributions, contact.contribution_details)
        contact.contribution_details = rollup.details
        contact.contribution_totals = rollup.totals

    def _scoring(self, contact: Contact, event: Event) -> None:
        contribution = score_contribution(contact.contribution_details, self.rules)
        potential = score_potential(contact.potential_details, self.rules)
        contact.contribution_score = contribution.score
        contact.contribution_class = contribution.score_class
        contact.potential_score = potential.score
        contact.potential_class = potential.score_class

    def _category(self, contact: Contact, event: Event) -> None:
        contact.value_category = resolve_value_category(
            contact.contribution_class, contact.potential_class
        )

    def _importance(self, contact: Contact, event: Event) -> None:
        importance = resolve_importance(
            contact.contribution_class, contact.potential_class, self.rules
        )
        contact.importance_level = importance.level
        contact.recommended_attention_level = importance.recommended_attention_level

    def _heat(self, contact: Contact, event: Event) -> None:
        frequency = contact.desired_frequency_days or self.rules.heat.default_frequency_days
        days = days_since_contact(contact.last_contact_date, frequency, self.today or date.today())
        heat = compute_heat(
            days,
            frequency,
            contact.response_quality,
            contact.relationship_energy,
            contact.attention_trend,
            self.rules,
        )
        contact.heat_index = heat.heat_index
        contact.heat_status = heat.heat_status


def recalculate_contact(
    existing: Optional[Contact],
    event: Event,
    rules: ScoringRules = DEFAULT_RULES,
    today: Optional[date] = None,
) -> Optional[Recalculation]:
    """Recalculate derived fields of a contact for one event.

    Args:
        existing: Persisted contact, or None if not found (no-op)
        event: The triggering event
        rules: Scoring constants
        today: Reference date for recency

    Returns:
        Recalculation, or None when the target contact does not exist
    """
    return RecalculationPipeline(rules, today).run(existing, event)
