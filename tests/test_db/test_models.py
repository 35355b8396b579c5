"""Tests for data models and boundary validation."""

from datetime import date, datetime

import pytest

from rapport.core.exceptions import ValidationError
from rapport.db.models import (
    CONTRIBUTION_CRITERIA,
    CURRENT_GENERATION,
    Contact,
    CriterionTotals,
    DetailsGeneration,
    HeatStatus,
    ImportanceLevel,
    validate_contact,
    validate_contact_fields,
    validate_details,
)


class TestEnums:
    """Test enum values as stored in SQLite."""

    def test_heat_status_values(self):
        """Heat statuses are lowercase colour names."""
        assert [s.value for s in HeatStatus] == ["green", "yellow", "red"]

    def test_str_enum_compares_to_text(self):
        """str enums compare equal to their stored text."""
        assert ImportanceLevel.A == "A"
        assert HeatStatus("red") is HeatStatus.RED

    def test_generation_shapes(self):
        """Older generations carry three criteria; legacy uses a 9-point scale."""
        assert DetailsGeneration.LEGACY_9.criteria == ("financial", "network", "trust")
        assert DetailsGeneration.LEGACY_9.scale_ceiling == 9
        assert DetailsGeneration.TRIAD_15.scale_ceiling == 15
        assert CURRENT_GENERATION.criteria == CONTRIBUTION_CRITERIA


class TestContact:
    """Test Contact defaults."""

    def test_defaults(self):
        """New contact starts unscored with neutral heat."""
        contact = Contact(full_name="Test")
        assert contact.value_category == "DD"
        assert contact.heat_status is HeatStatus.YELLOW
        assert contact.heat_index == 0.5
        assert contact.desired_frequency_days is None
        assert set(contact.contribution_details) == set(CONTRIBUTION_CRITERIA)

    def test_display_name_prefers_short_name(self):
        """display_name falls back to full_name."""
        assert Contact(full_name="Anna Petrova", short_name="Anna").display_name == "Anna"
        assert Contact(full_name="Anna Petrova").display_name == "Anna Petrova"

    def test_default_lists_not_shared(self):
        """Each contact gets its own tag list."""
        a, b = Contact(), Contact()
        a.tags.append("x")
        assert b.tags == []


class TestCriterionTotals:
    """Test totals snapshot serialization."""

    def test_dict_round_trip(self):
        """to_dict/from_dict keep the ISO date."""
        totals = CriterionTotals(total_amount=1500.0, count=2, last_date=date(2026, 1, 5))
        data = totals.to_dict()
        assert data["last_date"] == "2026-01-05"
        assert CriterionTotals.from_dict(data) == totals


class TestValidation:
    """Test boundary validation."""

    def test_rating_out_of_range(self):
        """Ratings must be 0-3."""
        with pytest.raises(ValidationError):
            validate_details({"network": 4}, CONTRIBUTION_CRITERIA, "contribution_details")

    def test_unknown_criterion(self):
        """Unknown keys are rejected."""
        with pytest.raises(ValidationError, match="Unknown"):
            validate_details({"charisma": 1}, CONTRIBUTION_CRITERIA, "contribution_details")

    def test_bool_is_not_a_rating(self):
        """Booleans are not accepted as ratings."""
        with pytest.raises(ValidationError):
            validate_details({"network": True}, CONTRIBUTION_CRITERIA, "contribution_details")

    def test_partial_change_set(self):
        """Only present keys are checked."""
        validate_contact_fields({"attention_level": 10})
        with pytest.raises(ValidationError):
            validate_contact_fields({"attention_trend": 2})
        with pytest.raises(ValidationError):
            validate_contact_fields({"desired_frequency_days": 0})

    def test_last_contact_date_must_be_a_date(self):
        """ISO text and datetimes are rejected; dates and None pass."""
        validate_contact_fields({"last_contact_date": date(2026, 1, 1)})
        validate_contact_fields({"last_contact_date": None})
        with pytest.raises(ValidationError, match="last_contact_date"):
            validate_contact_fields({"last_contact_date": "2026-01-01"})
        with pytest.raises(ValidationError, match="last_contact_date"):
            validate_contact_fields({"last_contact_date": datetime(2026, 1, 1, 9, 30)})

    def test_full_contact(self, sample_contact):
        """A well-formed contact validates; a blank name does not."""
        validate_contact(sample_contact)
        sample_contact.full_name = "  "
        with pytest.raises(ValidationError, match="full_name"):
            validate_contact(sample_contact)

    def test_missing_frequency_allowed(self):
        """A contact without a cadence is still valid."""
        validate_contact(Contact(full_name="No cadence"))

    def test_legacy_details_checked_against_legacy_keys(self):
        """Legacy records may not carry current-only criteria."""
        contact = Contact(
            full_name="Old",
            details_generation=DetailsGeneration.LEGACY_9,
            contribution_details={"financial": 1, "network": 1, "trust": 1, "emotional": 1},
        )
        with pytest.raises(ValidationError):
            validate_contact(contact)
