"""Tests for contact export."""

import csv
import json
from datetime import date
from pathlib import Path

import openpyxl
import pytest

from rapport.core.exceptions import ExportError
from rapport.db.models import Contact
from rapport.engine.export import (
    DEFAULT_COLUMNS,
    contact_rows,
    export_contacts_csv,
    export_contacts_json,
    export_contacts_xlsx,
)


@pytest.fixture
def contacts(sample_contact) -> list[Contact]:
    sample_contact.last_contact_date = date(2026, 2, 20)
    return [sample_contact, Contact(full_name="Ivan, Jr.", desired_frequency_days=7)]


class TestContactRows:
    """Test row flattening."""

    def test_header_and_flattened_criteria(self, contacts):
        """Criteria become individual columns; lists are joined."""
        rows = contact_rows(contacts)
        header = rows[0]
        first = dict(zip(header, rows[1]))
        assert header == DEFAULT_COLUMNS
        assert first["tags"] == "moscow;design"
        assert first["contribution_network"] == "2"
        assert first["potential_system_role"] == "1"
        assert first["importance_level"] == "C"
        assert first["last_contact_date"] == "2026-02-20"

    def test_custom_columns(self, contacts):
        """Only requested columns are emitted."""
        rows = contact_rows(contacts, ["full_name", "email"])
        assert rows[1] == ["Anna Petrova", "anna@example.com"]
        assert rows[2] == ["Ivan, Jr.", ""]


class TestExportCsv:
    """Test CSV export."""

    def test_writes_bom_and_rows(self, contacts, tmp_path: Path):
        """File starts with a UTF-8 BOM and quotes commas."""
        path = tmp_path / "out" / "contacts.csv"
        assert export_contacts_csv(contacts, path) == 2
        assert path.read_bytes().startswith(b"\xef\xbb\xbf")

        with open(path, newline="", encoding="utf-8-sig") as f:
            rows = list(csv.reader(f))
        assert rows[0][0] == "full_name"
        assert rows[2][0] == "Ivan, Jr."

    def test_unwritable_path_raises(self, contacts, tmp_path: Path):
        """I/O failures surface as ExportError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(ExportError):
            export_contacts_csv(contacts, blocker / "contacts.csv")


class TestExportJson:
    """Test JSON export."""

    def test_nested_details(self, contacts, tmp_path: Path):
        """Detail records stay nested; dates are ISO strings."""
        path = tmp_path / "contacts.json"
        export_contacts_json(contacts, path)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data) == 2
        assert data[0]["contribution_details"]["network"] == 2
        assert data[0]["last_contact_date"] == "2026-02-20"
        assert data[1]["last_contact_date"] is None
        assert data[0]["role_tags"] == ["partner"]


class TestExportXlsx:
    """Test Excel export."""

    def test_same_columns_as_csv(self, contacts, tmp_path: Path):
        """Workbook has a header row and one row per contact."""
        path = tmp_path / "contacts.xlsx"
        assert export_contacts_xlsx(contacts, path) == 2

        wb = openpyxl.load_workbook(str(path))
        ws = wb.active
        rows = list(ws.iter_rows(values_only=True))
        wb.close()
        assert ws.title == "Contacts"
        assert list(rows[0]) == DEFAULT_COLUMNS
        assert rows[1][0] == "Anna Petrova"
        assert len(rows) == 3
