"""Engine package - Scoring and derived metrics.

This package contains all scoring logic:
    - Class thresholds and contribution/potential scoring
    - Importance tiers and recommended attention
    - Heat index
    - Purchase and contribution roll-ups
    - Recalculation cascade

Modules:
    - rules: Scoring constants
    - thresholds: Score -> letter class
    - scoring: Contribution, potential, value category
    - importance: Importance tier and recommended attention
    - heat: Heat index and status
    - rollups: Child-record aggregation
    - migration: Legacy contribution_details normalization
    - recalculation: Event -> stage plan -> new contact
    - refresh: Storage-facing recalculation service
    - priorities: Attention gap, matrix, urgent lists
    - export: CSV, JSON and XLSX export
"""

from rapport.engine.heat import compute_heat, days_since_contact
from rapport.engine.importance import recommended_attention_level, resolve_importance
from rapport.engine.recalculation import (
    STAGE_PLAN,
    ContactCreated,
    ContactEdited,
    ContributionsChanged,
    FullRefresh,
    InteractionAdded,
    InteractionRemoved,
    PurchasesChanged,
    Stage,
    plan_stages,
    recalculate_contact,
)
from rapport.engine.rollups import rollup_contributions, rollup_purchases
from rapport.engine.rules import DEFAULT_RULES, ScoringRules
from rapport.engine.scoring import resolve_value_category, score_contribution, score_potential
from rapport.engine.thresholds import resolve_class

__all__ = [
    # Rules
    "DEFAULT_RULES",
    "ScoringRules",
    # Scoring
    "resolve_class",
    "score_contribution",
    "score_potential",
    "resolve_value_category",
    "resolve_importance",
    "recommended_attention_level",
    "compute_heat",
    "days_since_contact",
    # Roll-ups
    "rollup_purchases",
    "rollup_contributions",
    # Recalculation
    "STAGE_PLAN",
    "Stage",
    "ContactCreated",
    "ContactEdited",
    "InteractionAdded",
    "InteractionRemoved",
    "PurchasesChanged",
    "ContributionsChanged",
    "FullRefresh",
    "plan_stages",
    "recalculate_contact",
]
