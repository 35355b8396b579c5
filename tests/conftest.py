"""Shared pytest fixtures for Rapport tests.

Fixtures:
    - temp_db: Fresh file-backed SQLite database
    - memory_db: Fresh in-memory SQLite database
    - metrics: ContactMetrics over memory_db with a fixed reference date
    - today: Fixed reference date for recency
    - sample_contact: Mid-value contact, never contacted
    - key_contact: High-value contact (AA) contacted recently
"""

from datetime import date, timedelta
from pathlib import Path
from typing import Generator

import pytest

from rapport.core.config import reset_config
from rapport.db.database import Database
from rapport.db.models import Contact
from rapport.engine.refresh import ContactMetrics

TODAY = date(2026, 3, 2)


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point every configured path at the test's tmp dir."""
    monkeypatch.setenv("RAPPORT_DB_PATH", str(tmp_path / "rapport.db"))
    monkeypatch.setenv("RAPPORT_LOG_PATH", str(tmp_path / "logs"))
    monkeypatch.setenv("RAPPORT_EXPORT_PATH", str(tmp_path / "exports"))
    monkeypatch.delenv("RAPPORT_DEFAULT_FREQUENCY_DAYS", raising=False)
    monkeypatch.delenv("RAPPORT_DEBUG", raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def today() -> date:
    """Fixed reference date so heat does not drift with the calendar."""
    return TODAY


@pytest.fixture
def temp_db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a temporary database for testing.

    Yields:
        Database connected to temp file, cleaned up after test
    """
    db_path = tmp_path / "test.db"
    db = Database(str(db_path))
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def memory_db() -> Generator[Database, None, None]:
    """Create an in-memory database for fast tests.

    Yields:
        Database using :memory:, no cleanup needed
    """
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def metrics(memory_db: Database, today: date) -> ContactMetrics:
    """ContactMetrics over the in-memory database."""
    return ContactMetrics(memory_db, today=today, default_frequency_days=30)


@pytest.fixture
def sample_contact() -> Contact:
    """Mid-value contact that has never been contacted."""
    return Contact(
        full_name="Anna Petrova",
        short_name="Anna",
        email="anna@example.com",
        tags=["moscow", "design"],
        role_tags=["partner"],
        contribution_details={
            "financial": 1,
            "network": 2,
            "trust": 2,
            "emotional": 1,
            "intellectual": 1,
        },
        potential_details={
            "personal": 2,
            "resources": 1,
            "network": 2,
            "synergy": 2,
            "system_role": 1,
        },
        desired_frequency_days=30,
    )


@pytest.fixture
def key_contact() -> Contact:
    """High-value contact with a recent meaningful interaction."""
    return Contact(
        full_name="Boris Ivanov",
        contribution_details={
            "financial": 3,
            "network": 3,
            "trust": 3,
            "emotional": 2,
            "intellectual": 2,
        },
        potential_details={
            "personal": 3,
            "resources": 3,
            "network": 3,
            "synergy": 2,
            "system_role": 2,
        },
        attention_level=8,
        desired_frequency_days=14,
        last_contact_date=TODAY - timedelta(days=3),
        response_quality=3,
        relationship_energy=5,
        attention_trend=1,
    )
