"""Priorities and portfolio analytics over scored contacts.

Read-only views on derived fields:
    - Attention gap: recommended minus actual attention level
    - Importance x heat matrix and summary stats
    - Urgent list: red contacts with high value (category A* or BA)
    - Develop list: the same rule on yellow contacts
    - Priority ranking: importance first, then coldest first

Usage:
    from rapport.engine.priorities import summarize, urgent_contacts

    stats = summarize(db.get_contacts())
"""

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from rapport.db.models import Contact, HeatStatus, ImportanceLevel

# gap <= 0 green, 1-2 yellow, 3+ red
GAP_YELLOW_AT = 1
GAP_RED_AT = 3

_IMPORTANCE_RANK = {ImportanceLevel.A: 0, ImportanceLevel.B: 1, ImportanceLevel.C: 2}


@dataclass
class PortfolioStats:
    """Summary counts over a set of contacts.

    Attributes:
        total: Number of contacts
        green: Contacts with green heat
        yellow: Contacts with yellow heat
        red: Contacts with red heat
        importance_a: Contacts in importance tier A
        avg_heat_index: Mean heat index (0.0 for an empty set)
        matrix: importance level -> heat status -> count
    """

    total: int = 0
    green: int = 0
    yellow: int = 0
    red: int = 0
    importance_a: int = 0
    avg_heat_index: float = 0.0
    matrix: dict[str, dict[str, int]] = field(default_factory=dict)


def attention_gap(contact: Contact) -> int:
    """Recommended minus actual attention level."""
    return contact.recommended_attention_level - contact.attention_level


def attention_gap_status(contact: Contact) -> HeatStatus:
    """Colour the attention gap the way heat is coloured."""
    gap = attention_gap(contact)
    if gap >= GAP_RED_AT:
        return HeatStatus.RED
    if gap >= GAP_YELLOW_AT:
        return HeatStatus.YELLOW
    return HeatStatus.GREEN


def importance_heat_matrix(contacts: Iterable[Contact]) -> dict[str, dict[str, int]]:
    """Count contacts per importance level and heat status.

    Every cell is present, zero when empty.
    """
    matrix = {
        level.value: {status.value: 0 for status in HeatStatus} for level in ImportanceLevel
    }
    for contact in contacts:
        level = ImportanceLevel(contact.importance_level).value
        status = HeatStatus(contact.heat_status).value
        matrix[level][status] += 1
    return matrix


def summarize(contacts: Sequence[Contact]) -> PortfolioStats:
    """Build PortfolioStats for a set of contacts."""
    stats = PortfolioStats(total=len(contacts), matrix=importance_heat_matrix(contacts))
    for contact in contacts:
        status = HeatStatus(contact.heat_status)
        if status is HeatStatus.GREEN:
            stats.green += 1
        elif status is HeatStatus.YELLOW:
            stats.yellow += 1
        else:
            stats.red += 1
        if ImportanceLevel(contact.importance_level) is ImportanceLevel.A:
            stats.importance_a += 1

    if contacts:
        stats.avg_heat_index = sum(c.heat_index for c in contacts) / len(contacts)
    return stats


def is_high_value(contact: Contact) -> bool:
    """Value category starts with A, or is BA."""
    category = contact.value_category or ""
    return category.startswith("A") or category == "BA"


def urgent_contacts(contacts: Iterable[Contact]) -> list[Contact]:
    """High-value contacts that have gone cold (red)."""
    return rank_by_priority(
        c for c in contacts if HeatStatus(c.heat_status) is HeatStatus.RED and is_high_value(c)
    )


def develop_contacts(contacts: Iterable[Contact]) -> list[Contact]:
    """High-value contacts that are cooling (yellow)."""
    return rank_by_priority(
        c for c in contacts if HeatStatus(c.heat_status) is HeatStatus.YELLOW and is_high_value(c)
    )


def rank_by_priority(contacts: Iterable[Contact]) -> list[Contact]:
    """Sort by importance (A first), then heat index ascending, then name."""
    return sorted(
        contacts,
        key=lambda c: (
            _IMPORTANCE_RANK[ImportanceLevel(c.importance_level)],
            c.heat_index,
            c.full_name,
        ),
    )
