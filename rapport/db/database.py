"""SQLite database connection and operations for Rapport.

Provides:
    - Connection management with WAL mode
    - Schema creation
    - CRUD operations for contacts and their child records
    - Write-back of derived scoring fields

Detail records, totals snapshots and tag lists are stored as JSON text.

Usage:
    from rapport.db.database import Database

    db = Database()
    db.initialize()

    contact_id = db.create_contact(Contact(full_name="Anna Petrova"))
"""

import json
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from rapport.core.config import get_config
from rapport.core.exceptions import DatabaseError
from rapport.core.logging import get_logger
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

logger = get_logger(__name__)


# Schema version for migrations
SCHEMA_VERSION = 1

# Columns written by the recalculation cascade
_DERIVED_COLUMNS = (
    "contribution_details",
    "details_generation",
    "potential_details",
    "contribution_score",
    "contribution_class",
    "potential_score",
    "potential_class",
    "value_category",
    "importance_level",
    "recommended_attention_level",
    "last_contact_date",
    "heat_index",
    "heat_status",
    "purchase_totals",
    "contribution_totals",
)


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _loads(value: Optional[str], default: Any) -> Any:
    if not value:
        return default
    return json.loads(value)


class Database:
    """SQLite database manager.

    Attributes:
        db_path: Path to database file
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database.

        Args:
            db_path: Path to database file. Use ":memory:" for in-memory.
                    Defaults to config path.
        """
        if db_path is None:
            config = get_config()
            self.db_path = str(config.db_path)
        else:
            self.db_path = db_path

        self._conn: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            try:
                # Create directory if needed (unless in-memory)
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

                self._conn = sqlite3.connect(self.db_path)
                self._conn.row_factory = sqlite3.Row

                # Enable foreign keys
                self._conn.execute("PRAGMA foreign_keys = ON")

                # Enable WAL mode for better concurrency
                if self.db_path != ":memory:":
                    self._conn.execute("PRAGMA journal_mode = WAL")

            except sqlite3.Error as e:
                raise DatabaseError(f"Cannot connect to database: {e}") from e

        return self._conn

    @staticmethod
    def _lastrowid(cursor: sqlite3.Cursor) -> int:
        """Extract lastrowid from cursor (always set after INSERT in SQLite)."""
        row_id = cursor.lastrowid
        assert row_id is not None, "lastrowid was None after INSERT"
        return row_id

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def initialize(self) -> None:
        """Create schema if not exists."""
        conn = self._get_connection()

        try:
            conn.executescript(self._get_schema_ddl())
            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )
            conn.commit()
            logger.info("Database initialized", extra={"context": {"path": self.db_path}})
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot initialize database: {e}") from e

    def _get_schema_ddl(self) -> str:
        """Return complete schema DDL."""
        return """
        -- Contacts
        CREATE TABLE IF NOT EXISTS contacts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            team_id TEXT,
            full_name TEXT NOT NULL,
            short_name TEXT,
            email TEXT,
            phone TEXT,
            tags TEXT,
            role_tags TEXT,
            contribution_details TEXT,
            details_generation TEXT NOT NULL DEFAULT 'pentad_15',
            potential_details TEXT,
            contribution_score INTEGER DEFAULT 0,
            contribution_class TEXT DEFAULT 'D',
            potential_score INTEGER DEFAULT 0,
            potential_class TEXT DEFAULT 'D',
            value_category TEXT DEFAULT 'DD',
            importance_level TEXT DEFAULT 'C',
            recommended_attention_level INTEGER DEFAULT 2,
            attention_level INTEGER DEFAULT 1,
            desired_frequency_days INTEGER,
            last_contact_date TEXT,
            response_quality INTEGER DEFAULT 2,
            relationship_energy INTEGER DEFAULT 3,
            attention_trend INTEGER DEFAULT 0,
            heat_index REAL DEFAULT 0.5,
            heat_status TEXT DEFAULT 'yellow',
            purchase_totals TEXT,
            contribution_totals TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_contacts_team ON contacts(team_id);
        CREATE INDEX IF NOT EXISTS idx_contacts_heat ON contacts(heat_status);
        CREATE INDEX IF NOT EXISTS idx_contacts_importance ON contacts(importance_level);

        -- Interactions
        CREATE TABLE IF NOT EXISTS interactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            contact_id INTEGER NOT NULL,
            date TEXT NOT NULL,
            type TEXT NOT NULL DEFAULT 'other',
            channel TEXT NOT NULL DEFAULT 'other',
            note TEXT,
            is_meaningful INTEGER DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_interactions_contact ON interactions(contact_id);

        -- Purchases
        CREATE TABLE IF NOT EXISTS purchases (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            contact_id INTEGER NOT NULL,
            product_name TEXT NOT NULL,
            category TEXT,
            amount REAL,
            currency TEXT DEFAULT 'RUB',
            purchased_at TEXT,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_purchases_contact ON purchases(contact_id);

        -- Contribution events
        CREATE TABLE IF NOT EXISTS contributions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            contact_id INTEGER NOT NULL,
            criterion_type TEXT NOT NULL,
            title TEXT NOT NULL,
            amount REAL,
            currency TEXT,
            contributed_at TEXT,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_contributions_contact ON contributions(contact_id);

        -- Schema version
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """

    # =========================================================================
    # ROW CONVERTERS
    # =========================================================================

    def _row_to_contact(self, row: sqlite3.Row) -> Contact:
        """Convert a database row to a Contact dataclass."""
        totals_raw = _loads(row["purchase_totals"], None)
        contribution_totals = {
            key: CriterionTotals.from_dict(value)
            for key, value in _loads(row["contribution_totals"], {}).items()
        }
        return Contact(
            id=row["id"],
            team_id=row["team_id"],
            full_name=row["full_name"],
            short_name=row["short_name"],
            email=row["email"],
            phone=row["phone"],
            tags=_loads(row["tags"], []),
            role_tags=_loads(row["role_tags"], []),
            contribution_details=_loads(row["contribution_details"], {}),
            details_generation=DetailsGeneration(row["details_generation"]),
            potential_details=_loads(row["potential_details"], {}),
            contribution_score=row["contribution_score"] or 0,
            contribution_class=ScoreClass(row["contribution_class"] or "D"),
            potential_score=row["potential_score"] or 0,
            potential_class=ScoreClass(row["potential_class"] or "D"),
            value_category=row["value_category"] or "DD",
            importance_level=ImportanceLevel(row["importance_level"] or "C"),
            recommended_attention_level=row["recommended_attention_level"] or 2,
            attention_level=row["attention_level"] or 1,
            desired_frequency_days=row["desired_frequency_days"],
            last_contact_date=_as_date(row["last_contact_date"]),
            response_quality=row["response_quality"],
            relationship_energy=row["relationship_energy"],
            attention_trend=row["attention_trend"] or 0,
            heat_index=row["heat_index"],
            heat_status=HeatStatus(row["heat_status"] or "yellow"),
            purchase_totals=CriterionTotals.from_dict(totals_raw) if totals_raw else None,
            contribution_totals=contribution_totals,
            created_at=_as_datetime(row["created_at"]),
            updated_at=_as_datetime(row["updated_at"]),
        )

    def _row_to_interaction(self, row: sqlite3.Row) -> Interaction:
        """Convert a database row to an Interaction dataclass."""
        return Interaction(
            id=row["id"],
            contact_id=row["contact_id"],
            date=_as_date(row["date"]),
            type=InteractionType(row["type"]),
            channel=InteractionChannel(row["channel"]),
            note=row["note"],
            is_meaningful=bool(row["is_meaningful"]),
            created_at=_as_datetime(row["created_at"]),
        )

    def _row_to_purchase(self, row: sqlite3.Row) -> Purchase:
        """Convert a database row to a Purchase dataclass."""
        return Purchase(
            id=row["id"],
            contact_id=row["contact_id"],
            product_name=row["product_name"],
            category=row["category"],
            amount=row["amount"],
            currency=row["currency"] or "RUB",
            purchased_at=_as_date(row["purchased_at"]),
            notes=row["notes"],
            created_at=_as_datetime(row["created_at"]),
        )

    def _row_to_contribution(self, row: sqlite3.Row) -> Contribution:
        """Convert a database row to a Contribution dataclass."""
        return Contribution(
            id=row["id"],
            contact_id=row["contact_id"],
            criterion_type=CriterionType(row["criterion_type"]),
            title=row["title"],
            amount=row["amount"],
            currency=row["currency"],
            contributed_at=_as_date(row["contributed_at"]),
            notes=row["notes"],
            created_at=_as_datetime(row["created_at"]),
        )

    @staticmethod
    def _contact_values(contact: Contact) -> dict[str, Any]:
        """Column values for a contact, enums and JSON serialized."""
        return {
            "team_id": contact.team_id,
            "full_name": contact.full_name,
            "short_name": contact.short_name,
            "email": contact.email,
            "phone": contact.phone,
            "tags": json.dumps(contact.tags or []),
            "role_tags": json.dumps(contact.role_tags or []),
            "contribution_details": json.dumps(contact.contribution_details or {}),
            "details_generation": DetailsGeneration(contact.details_generation).value,
            "potential_details": json.dumps(contact.potential_details or {}),
            "contribution_score": contact.contribution_score,
            "contribution_class": ScoreClass(contact.contribution_class).value,
            "potential_score": contact.potential_score,
            "potential_class": ScoreClass(contact.potential_class).value,
            "value_category": contact.value_category,
            "importance_level": ImportanceLevel(contact.importance_level).value,
            "recommended_attention_level": contact.recommended_attention_level,
            "attention_level": contact.attention_level,
            "desired_frequency_days": contact.desired_frequency_days,
            "last_contact_date": _iso(contact.last_contact_date),
            "response_quality": contact.response_quality,
            "relationship_energy": contact.relationship_energy,
            "attention_trend": contact.attention_trend,
            "heat_index": contact.heat_index,
            "heat_status": HeatStatus(contact.heat_status).value,
            "purchase_totals": (
                json.dumps(contact.purchase_totals.to_dict()) if contact.purchase_totals else None
            ),
            "contribution_totals": json.dumps(
                {key: value.to_dict() for key, value in (contact.contribution_totals or {}).items()}
            ),
        }

    # =========================================================================
    # CONTACT OPERATIONS
    # =========================================================================

    def create_contact(self, contact: Contact) -> int:
        """Create a contact record.

        Args:
            contact: Contact to create, derived fields already computed

        Returns:
            New contact ID
        """
        conn = self._get_connection()
        values = self._contact_values(contact)
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        try:
            cursor = conn.execute(
                f"INSERT INTO contacts ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            conn.commit()
            contact_id = self._lastrowid(cursor)
            logger.info(
                "Contact created",
                extra={"context": {"contact_id": contact_id, "name": contact.full_name}},
            )
            return contact_id
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to create contact: {e}") from e

    def get_contact(self, contact_id: int) -> Optional[Contact]:
        """Get contact by ID."""
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM contacts WHERE id = ?", (contact_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_contact(row)

    def get_contacts(
        self,
        team_id: Optional[str] = None,
        heat_status: Optional[HeatStatus] = None,
        importance_level: Optional[ImportanceLevel] = None,
        limit: Optional[int] = None,
    ) -> list[Contact]:
        """Get contacts with optional filters, ordered by name."""
        conn = self._get_connection()
        query = "SELECT * FROM contacts WHERE 1=1"
        params: list[Any] = []

        if team_id is not None:
            query += " AND team_id = ?"
            params.append(team_id)
        if heat_status is not None:
            query += " AND heat_status = ?"
            params.append(HeatStatus(heat_status).value)
        if importance_level is not None:
            query += " AND importance_level = ?"
            params.append(ImportanceLevel(importance_level).value)

        query += " ORDER BY full_name"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = conn.execute(query, params).fetchall()
        return [self._row_to_contact(row) for row in rows]

    def get_contact_ids(self) -> list[int]:
        """All contact IDs in insertion order."""
        conn = self._get_connection()
        rows = conn.execute("SELECT id FROM contacts ORDER BY id").fetchall()
        return [row["id"] for row in rows]

    def update_contact(self, contact: Contact) -> bool:
        """Update every column of a contact. Returns True if updated."""
        if contact.id is None:
            return False
        conn = self._get_connection()
        values = self._contact_values(contact)
        assignments = ", ".join(f"{column} = ?" for column in values)
        try:
            cursor = conn.execute(
                f"UPDATE contacts SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (*values.values(), contact.id),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to update contact: {e}") from e

    def save_derived(self, contact: Contact) -> bool:
        """Write back only the derived scoring fields of a contact.

        Returns:
            True if a row was updated
        """
        if contact.id is None:
            return False
        conn = self._get_connection()
        values = self._contact_values(contact)
        derived = {column: values[column] for column in _DERIVED_COLUMNS}
        assignments = ", ".join(f"{column} = ?" for column in derived)
        try:
            cursor = conn.execute(
                f"UPDATE contacts SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (*derived.values(), contact.id),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to save derived fields: {e}") from e

    def delete_contact(self, contact_id: int) -> bool:
        """Delete a contact and, by cascade, its child records."""
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM contacts WHERE id = ?", (contact_id,))
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to delete contact: {e}") from e

    # =========================================================================
    # INTERACTION OPERATIONS
    # =========================================================================

    def create_interaction(self, interaction: Interaction) -> int:
        """Create an interaction record."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """INSERT INTO interactions
                   (contact_id, date, type, channel, note, is_meaningful)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    interaction.contact_id,
                    _iso(interaction.date),
                    InteractionType(interaction.type).value,
                    InteractionChannel(interaction.channel).value,
                    interaction.note,
                    1 if interaction.is_meaningful else 0,
                ),
            )
            conn.commit()
            return self._lastrowid(cursor)
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to create interaction: {e}") from e

    def get_interaction(self, interaction_id: int) -> Optional[Interaction]:
        """Get interaction by ID."""
        conn = self._get_connection()
        row = conn.execute(
            "SELECT * FROM interactions WHERE id = ?", (interaction_id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_interaction(row)

    def get_interactions(self, contact_id: int, meaningful_only: bool = False) -> list[Interaction]:
        """Interactions of a contact, newest first."""
        conn = self._get_connection()
        query = "SELECT * FROM interactions WHERE contact_id = ?"
        if meaningful_only:
            query += " AND is_meaningful = 1"
        query += " ORDER BY date DESC, id DESC"
        rows = conn.execute(query, (contact_id,)).fetchall()
        return [self._row_to_interaction(row) for row in rows]

    def delete_interaction(self, interaction_id: int) -> bool:
        """Delete an interaction. Returns True if deleted."""
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM interactions WHERE id = ?", (interaction_id,))
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to delete interaction: {e}") from e

    # =========================================================================
    # PURCHASE OPERATIONS
    # =========================================================================

    def create_purchase(self, purchase: Purchase) -> int:
        """Create a purchase record."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """INSERT INTO purchases
                   (contact_id, product_name, category, amount, currency, purchased_at, notes)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    purchase.contact_id,
                    purchase.product_name,
                    purchase.category,
                    purchase.amount,
                    purchase.currency,
                    _iso(purchase.purchased_at),
                    purchase.notes,
                ),
            )
            conn.commit()
            return self._lastrowid(cursor)
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to create purchase: {e}") from e

    def get_purchase(self, purchase_id: int) -> Optional[Purchase]:
        """Get purchase by ID."""
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM purchases WHERE id = ?", (purchase_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_purchase(row)

    def get_purchases(self, contact_id: int) -> list[Purchase]:
        """Purchases of a contact, newest first."""
        conn = self._get_connection()
        rows = conn.execute(
            "SELECT * FROM purchases WHERE contact_id = ? ORDER BY purchased_at DESC, id DESC",
            (contact_id,),
        ).fetchall()
        return [self._row_to_purchase(row) for row in rows]

    def update_purchase(self, purchase: Purchase) -> bool:
        """Update purchase. Returns True if updated."""
        if purchase.id is None:
            return False
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """UPDATE purchases SET
                   product_name = ?, category = ?, amount = ?, currency = ?,
                   purchased_at = ?, notes = ?
                   WHERE id = ?""",
                (
                    purchase.product_name,
                    purchase.category,
                    purchase.amount,
                    purchase.currency,
                    _iso(purchase.purchased_at),
                    purchase.notes,
                    purchase.id,
                ),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to update purchase: {e}") from e

    def delete_purchase(self, purchase_id: int) -> bool:
        """Delete a purchase. Returns True if deleted."""
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM purchases WHERE id = ?", (purchase_id,))
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to delete purchase: {e}") from e

    # =========================================================================
    # CONTRIBUTION OPERATIONS
    # =========================================================================

    def create_contribution(self, contribution: Contribution) -> int:
        """Create a contribution event record."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """INSERT INTO contributions
                   (contact_id, criterion_type, title, amount, currency, contributed_at, notes)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    contribution.contact_id,
                    CriterionType(contribution.criterion_type).value,
                    contribution.title,
                    contribution.amount,
                    contribution.currency,
                    _iso(contribution.contributed_at),
                    contribution.notes,
                ),
            )
            conn.commit()
            return self._lastrowid(cursor)
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to create contribution: {e}") from e

    def get_contribution(self, contribution_id: int) -> Optional[Contribution]:
        """Get contribution event by ID."""
        conn = self._get_connection()
        row = conn.execute(
            "SELECT * FROM contributions WHERE id = ?", (contribution_id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_contribution(row)

    def get_contributions(self, contact_id: int) -> list[Contribution]:
        """Contribution events of a contact, newest first."""
        conn = self._get_connection()
        rows = conn.execute(
            """SELECT * FROM contributions WHERE contact_id = ?
               ORDER BY contributed_at DESC, id DESC""",
            (contact_id,),
        ).fetchall()
        return [self._row_to_contribution(row) for row in rows]

    def update_contribution(self, contribution: Contribution) -> bool:
        """Update contribution event. Returns True if updated."""
        if contribution.id is None:
            return False
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """UPDATE contributions SET
                   criterion_type = ?, title = ?, amount = ?, currency = ?,
                   contributed_at = ?, notes = ?
                   WHERE id = ?""",
                (
                    CriterionType(contribution.criterion_type).value,
                    contribution.title,
                    contribution.amount,
                    contribution.currency,
                    _iso(contribution.contributed_at),
                    contribution.notes,
                    contribution.id,
                ),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to update contribution: {e}") from e

    def delete_contribution(self, contribution_id: int) -> bool:
        """Delete a contribution event. Returns True if deleted."""
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM contributions WHERE id = ?", (contribution_id,))
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to delete contribution: {e}") from e
