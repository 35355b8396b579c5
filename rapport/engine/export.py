"""Contact export.

Provides:
    - CSV export (UTF-8 with BOM so spreadsheet apps detect the encoding)
    - JSON export with nested detail records
    - XLSX export (requires openpyxl)

Only user-entered fields plus the importance level are exported; the
other derived fields are recomputed on import.

Usage:
    from rapport.engine.export import export_contacts_csv

    export_contacts_csv(db.get_contacts(), Path("contacts.csv"))
"""

import csv
import json
from pathlib import Path
from typing import Any, Optional, Sequence

from rapport.core.exceptions import ExportError
from rapport.core.logging import get_logger
from rapport.db.models import CONTRIBUTION_CRITERIA, POTENTIAL_CRITERIA, Contact

logger = get_logger(__name__)

# Flat columns; list fields are joined with LIST_SEPARATOR
DEFAULT_COLUMNS = [
    "full_name",
    "short_name",
    "phone",
    "email",
    "tags",
    "role_tags",
    "importance_level",
    "attention_level",
    "desired_frequency_days",
    "last_contact_date",
    "response_quality",
    "relationship_energy",
    "attention_trend",
    *(f"contribution_{key}" for key in CONTRIBUTION_CRITERIA),
    *(f"potential_{key}" for key in POTENTIAL_CRITERIA),
]

LIST_SEPARATOR = ";"


def _cell(contact: Contact, column: str) -> Any:
    """Raw value of a flat column."""
    if column.startswith("contribution_") and column[len("contribution_"):] in CONTRIBUTION_CRITERIA:
        return (contact.contribution_details or {}).get(column[len("contribution_"):], 0)
    if column.startswith("potential_") and column[len("potential_"):] in POTENTIAL_CRITERIA:
        return (contact.potential_details or {}).get(column[len("potential_"):], 0)
    return getattr(contact, column, None)


def _format(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return LIST_SEPARATOR.join(str(v) for v in value)
    if hasattr(value, "value"):
        # Enum types
        return str(value.value)
    if hasattr(value, "isoformat"):
        # datetime/date types
        return value.isoformat()
    return str(value)


def contact_rows(
    contacts: Sequence[Contact],
    columns: Optional[list[str]] = None,
) -> list[list[str]]:
    """Flatten contacts into string rows, header first."""
    cols = columns or DEFAULT_COLUMNS
    rows = [list(cols)]
    for contact in contacts:
        rows.append([_format(_cell(contact, col)) for col in cols])
    return rows


def contact_record(contact: Contact) -> dict[str, Any]:
    """JSON-ready record of one contact."""
    return {
        "full_name": contact.full_name,
        "short_name": contact.short_name,
        "phone": contact.phone,
        "email": contact.email,
        "tags": list(contact.tags or []),
        "role_tags": list(contact.role_tags or []),
        "contribution_details": dict(contact.contribution_details or {}),
        "potential_details": dict(contact.potential_details or {}),
        "importance_level": _format(contact.importance_level),
        "attention_level": contact.attention_level,
        "desired_frequency_days": contact.desired_frequency_days,
        "last_contact_date": _format(contact.last_contact_date) or None,
        "response_quality": contact.response_quality,
        "relationship_energy": contact.relationship_energy,
        "attention_trend": contact.attention_trend,
    }


def export_contacts_csv(
    contacts: Sequence[Contact],
    path: Path,
    columns: Optional[list[str]] = None,
) -> int:
    """Export contacts to CSV.

    Args:
        contacts: Contacts to export
        path: Output file path
        columns: Columns to include (defaults to DEFAULT_COLUMNS)

    Returns:
        Number of contacts written

    Raises:
        ExportError: If the file cannot be written
    """
    rows = contact_rows(contacts, columns)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8-sig") as f:
            writer = csv.writer(f)
            writer.writerows(rows)
    except OSError as e:
        logger.error(
            f"Failed to export contacts: {e}",
            extra={"context": {"path": str(path), "error": str(e)}},
        )
        raise ExportError(f"Cannot write CSV export: {e}") from e

    logger.info(
        f"Exported {len(contacts)} contacts to {path}",
        extra={"context": {"count": len(contacts), "path": str(path), "format": "csv"}},
    )
    return len(contacts)


def export_contacts_json(contacts: Sequence[Contact], path: Path) -> int:
    """Export contacts to a JSON array.

    Raises:
        ExportError: If the file cannot be written
    """
    records = [contact_record(contact) for contact in contacts]
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(records, f, ensure_ascii=False, indent=2)
    except OSError as e:
        logger.error(
            f"Failed to export contacts: {e}",
            extra={"context": {"path": str(path), "error": str(e)}},
        )
        raise ExportError(f"Cannot write JSON export: {e}") from e

    logger.info(
        f"Exported {len(contacts)} contacts to {path}",
        extra={"context": {"count": len(contacts), "path": str(path), "format": "json"}},
    )
    return len(contacts)


def export_contacts_xlsx(
    contacts: Sequence[Contact],
    path: Path,
    columns: Optional[list[str]] = None,
) -> int:
    """Export contacts to an Excel workbook, one sheet, same columns as CSV.

    Raises:
        ExportError: If openpyxl is missing or the file cannot be written
    """
    try:
        import openpyxl
    except ImportError as e:
        raise ExportError(
            "openpyxl is required for XLSX export. Install with: pip install openpyxl"
        ) from e

    rows = contact_rows(contacts, columns)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Contacts"
        for row in rows:
            ws.append(row)
        ws.freeze_panes = "A2"
        wb.save(str(path))
    except OSError as e:
        logger.error(
            f"Failed to export contacts: {e}",
            extra={"context": {"path": str(path), "error": str(e)}},
        )
        raise ExportError(f"Cannot write XLSX export: {e}") from e

    logger.info(
        f"Exported {len(contacts)} contacts to {path}",
        extra={"context": {"count": len(contacts), "path": str(path), "format": "xlsx"}},
    )
    return len(contacts)
