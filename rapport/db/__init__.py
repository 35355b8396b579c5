"""Database package - SQLite database and models.

Modules:
    - database: SQLite connection and operations
    - models: Data models, enumerations and boundary validation
"""

from rapport.db.models import (
    Contact,
    Contribution,
    CriterionTotals,
    CriterionType,
    DetailsGeneration,
    HeatStatus,
    ImportanceLevel,
    Interaction,
    InteractionChannel,
    InteractionType,
    Purchase,
    ScoreClass,
)

__all__ = [
    # Enums
    "ScoreClass",
    "ImportanceLevel",
    "HeatStatus",
    "CriterionType",
    "DetailsGeneration",
    "InteractionType",
    "InteractionChannel",
    # Dataclasses
    "Contact",
    "Interaction",
    "Purchase",
    "Contribution",
    "CriterionTotals",
]
