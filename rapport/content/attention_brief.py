"""Attention brief generation.

Produces a short plain-text memo with:
    - Portfolio summary (heat counts, A-importance count, average heat)
    - Importance x heat matrix
    - Urgent contacts (high value, gone cold)
    - Contacts to develop (high value, cooling)
    - Under-attended contacts (attention gap in the red)

Usage:
    from rapport.content.attention_brief import generate_attention_brief

    brief = generate_attention_brief(db)
    print(brief.full_text)
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Optional

import jinja2

from rapport.core.logging import get_logger
from rapport.db.database import Database
from rapport.db.models import Contact, HeatStatus
from rapport.engine.heat import days_since_contact
from rapport.engine.priorities import (
    PortfolioStats,
    attention_gap,
    attention_gap_status,
    develop_contacts,
    rank_by_priority,
    summarize,
    urgent_contacts,
)
from rapport.engine.rules import DEFAULT_RULES

logger = get_logger(__name__)


TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
TEMPLATE_NAME = "attention_brief.txt.j2"

# Jinja2 environment (created once, reused)
_env: Optional[jinja2.Environment] = None


@dataclass
class AttentionBrief:
    """Attention brief content."""

    date: str
    full_text: str
    stats: PortfolioStats = field(default_factory=PortfolioStats)
    urgent_count: int = 0
    develop_count: int = 0
    gap_count: int = 0


def _get_env() -> jinja2.Environment:
    """Get or create the Jinja2 environment."""
    global _env
    if _env is None:
        _env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=False,  # Plain text
            undefined=jinja2.StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
    return _env


def reset_env() -> None:
    """Reset the Jinja2 environment (for testing)."""
    global _env
    _env = None


def _days_label(contact: Contact, today: date) -> str:
    if contact.last_contact_date is None:
        return "never contacted"
    frequency = contact.desired_frequency_days or DEFAULT_RULES.heat.default_frequency_days
    days = days_since_contact(contact.last_contact_date, frequency, today)
    return f"{days}d since contact (every {frequency}d)"


def _item(contact: Contact, today: date) -> dict[str, Any]:
    return {
        "name": contact.display_name,
        "value_category": contact.value_category,
        "heat_index": contact.heat_index,
        "days_label": _days_label(contact, today),
    }


def build_brief(
    contacts: list[Contact],
    today: Optional[date] = None,
    limit: int = 10,
) -> AttentionBrief:
    """Render the brief for a list of scored contacts.

    Args:
        contacts: Contacts with derived fields up to date
        today: Reference date (defaults to today)
        limit: Maximum entries per list section

    Returns:
        AttentionBrief with rendered text
    """
    today = today or date.today()
    stats = summarize(contacts)
    urgent = urgent_contacts(contacts)
    develop = develop_contacts(contacts)
    gaps = rank_by_priority(
        c for c in contacts if attention_gap_status(c) is HeatStatus.RED
    )

    text = (
        _get_env()
        .get_template(TEMPLATE_NAME)
        .render(
            brief_date=today.strftime("%A, %B %d, %Y"),
            stats=stats,
            urgent=[_item(c, today) for c in urgent[:limit]],
            develop=[_item(c, today) for c in develop[:limit]],
            gaps=[
                {
                    "name": c.display_name,
                    "attention_level": c.attention_level,
                    "recommended": c.recommended_attention_level,
                    "gap": attention_gap(c),
                }
                for c in gaps[:limit]
            ],
        )
    )

    return AttentionBrief(
        date=today.isoformat(),
        full_text=text,
        stats=stats,
        urgent_count=len(urgent),
        develop_count=len(develop),
        gap_count=len(gaps),
    )


def generate_attention_brief(db: Database, today: Optional[date] = None) -> AttentionBrief:
    """Generate the attention brief from the database."""
    brief = build_brief(db.get_contacts(), today)
    logger.info(
        "Attention brief generated",
        extra={
            "context": {
                "contacts": brief.stats.total,
                "urgent": brief.urgent_count,
                "develop": brief.develop_count,
            }
        },
    )
    return brief
