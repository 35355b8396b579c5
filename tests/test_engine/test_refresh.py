"""Tests for the ContactMetrics service over a real database."""

from datetime import timedelta

import pytest

from rapport.core.exceptions import ValidationError
from rapport.db.models import (
    Contact,
    Contribution,
    CriterionType,
    HeatStatus,
    Interaction,
    Purchase,
    ScoreClass,
)
from rapport.engine.refresh import ContactMetrics


@pytest.fixture
def anna(metrics, sample_contact) -> Contact:
    """sample_contact stored through the service."""
    return metrics.add_contact(sample_contact)


# =============================================================================
# CONTACTS
# =============================================================================


class TestAddContact:
    """Test contact creation."""

    def test_scored_and_persisted(self, metrics, memory_db, anna):
        """The stored record carries the derived fields."""
        stored = memory_db.get_contact(anna.id)
        assert stored is not None
        assert stored.value_category == "CB"
        assert stored.heat_index == 0.53
        assert stored.contribution_class is ScoreClass.C

    def test_default_cadence_assigned(self, memory_db, today):
        """A contact without cadence gets the configured default."""
        service = ContactMetrics(memory_db, today=today, default_frequency_days=21)
        contact = service.add_contact(Contact(full_name="No Cadence"))
        assert contact.desired_frequency_days == 21
        assert memory_db.get_contact(contact.id).desired_frequency_days == 21

    def test_default_cadence_from_config(self, memory_db, monkeypatch):
        """Without an explicit default the config value is used."""
        from rapport.core.config import reset_config

        monkeypatch.setenv("RAPPORT_DEFAULT_FREQUENCY_DAYS", "45")
        reset_config()
        assert ContactMetrics(memory_db).default_frequency_days == 45

    def test_rating_out_of_range_rejected(self, metrics):
        """Ratings above 3 never reach the engine."""
        with pytest.raises(ValidationError):
            metrics.add_contact(Contact(full_name="Bad", potential_details={"personal": 4}))

    def test_name_required(self, metrics):
        """A blank name is rejected."""
        with pytest.raises(ValidationError):
            metrics.add_contact(Contact(full_name="  "))


class TestEditContact:
    """Test partial updates through the service."""

    def test_partial_update_persisted(self, metrics, memory_db, anna):
        """Merged details and new scores are stored."""
        metrics.edit_contact(anna.id, {"contribution_details": {"financial": 3}})
        stored = memory_db.get_contact(anna.id)
        assert stored.contribution_details["financial"] == 3
        assert stored.contribution_details["network"] == 2
        assert stored.value_category == "BB"

    def test_missing_contact_returns_none(self, metrics):
        """Editing an unknown contact is a no-op."""
        assert metrics.edit_contact(999, {"attention_level": 3}) is None

    def test_invalid_change_rejected(self, metrics, anna):
        """Out-of-range values raise before anything is written."""
        with pytest.raises(ValidationError):
            metrics.edit_contact(anna.id, {"relationship_energy": 9})

    def test_blank_name_rejected(self, metrics, anna):
        """full_name cannot be cleared."""
        with pytest.raises(ValidationError):
            metrics.edit_contact(anna.id, {"full_name": ""})

    def test_string_last_contact_date_rejected(self, metrics, memory_db, anna):
        """last_contact_date must be a date, not its ISO text."""
        with pytest.raises(ValidationError):
            metrics.edit_contact(anna.id, {"last_contact_date": "2026-01-01"})
        assert memory_db.get_contact(anna.id).heat_index == 0.53


# =============================================================================
# INTERACTIONS
# =============================================================================


class TestInteractions:
    """Test interaction logging."""

    def test_log_meaningful_interaction(self, metrics, memory_db, anna, today):
        """A meaningful interaction updates and stores last contact."""
        metrics.log_interaction(Interaction(contact_id=anna.id, date=today, is_meaningful=True))
        stored = memory_db.get_contact(anna.id)
        assert stored.last_contact_date == today
        assert stored.heat_index == 0.73
        assert stored.heat_status is HeatStatus.GREEN

    def test_remove_interaction(self, metrics, memory_db, anna, today):
        """Deleting the only interaction clears last contact."""
        interaction = Interaction(contact_id=anna.id, date=today, is_meaningful=True)
        metrics.log_interaction(interaction)
        metrics.remove_interaction(interaction.id)
        stored = memory_db.get_contact(anna.id)
        assert stored.last_contact_date is None
        assert stored.heat_index == 0.53

    def test_interaction_needs_date(self, metrics, anna):
        """Interactions without a date are rejected."""
        with pytest.raises(ValidationError):
            metrics.log_interaction(Interaction(contact_id=anna.id, is_meaningful=True))

    def test_unknown_contact(self, metrics, today):
        """Interactions for an unknown contact are ignored."""
        assert metrics.log_interaction(Interaction(contact_id=42, date=today)) is None

    def test_unknown_interaction(self, metrics):
        """Removing an unknown interaction is a no-op."""
        assert metrics.remove_interaction(42) is None


# =============================================================================
# LEDGER
# =============================================================================


class TestLedger:
    """Test purchases and contribution events."""

    def test_record_and_remove_purchase(self, metrics, memory_db, anna, today):
        """Recording rolls money into financial; removing rolls it back."""
        purchase = Purchase(contact_id=anna.id, product_name="Retreat", amount=150_000, purchased_at=today)
        metrics.record_purchase(purchase)
        stored = memory_db.get_contact(anna.id)
        assert stored.contribution_details["financial"] == 2
        assert stored.purchase_totals.total_amount == 150_000
        assert stored.purchase_totals.last_date == today

        metrics.remove_purchase(purchase.id)
        stored = memory_db.get_contact(anna.id)
        assert stored.contribution_details["financial"] == 0
        assert stored.purchase_totals.count == 0

    def test_revise_purchase(self, metrics, memory_db, anna):
        """Changing an amount re-runs the roll-up."""
        purchase = Purchase(contact_id=anna.id, product_name="Retreat", amount=50_000)
        metrics.record_purchase(purchase)
        purchase.amount = 700_000
        metrics.revise_purchase(purchase)
        assert memory_db.get_contact(anna.id).contribution_details["financial"] == 3

    def test_contribution_event_keeps_rating_until_removed(self, metrics, memory_db, anna):
        """Removing the last event of a criterion resets it."""
        event = Contribution(contact_id=anna.id, criterion_type=CriterionType.NETWORK, title="Intro")
        metrics.record_contribution(event)
        assert memory_db.get_contact(anna.id).contribution_details["network"] == 2

        metrics.remove_contribution(event.id)
        assert memory_db.get_contact(anna.id).contribution_details["network"] == 0

    def test_revise_contribution_moves_criterion(self, metrics, memory_db, anna):
        """Re-typing an event moves its count to the new criterion."""
        event = Contribution(contact_id=anna.id, criterion_type=CriterionType.NETWORK, title="Intro")
        metrics.record_contribution(event)
        event.criterion_type = CriterionType.TRUST
        metrics.revise_contribution(event)
        stored = memory_db.get_contact(anna.id)
        assert stored.contribution_details["network"] == 0
        assert stored.contribution_totals["network"].count == 0
        assert stored.contribution_totals["trust"].count == 1

    def test_purchase_keeps_manual_ratings(self, metrics, memory_db, anna):
        """Recording a purchase leaves operator-set ratings with no events alone."""
        metrics.record_purchase(Purchase(contact_id=anna.id, product_name="Retreat", amount=150_000))
        details = memory_db.get_contact(anna.id).contribution_details
        assert details["financial"] == 2
        assert details["network"] == 2
        assert details["trust"] == 2
        assert details["emotional"] == 1

    def test_non_money_contribution_keeps_financial(self, metrics, memory_db, key_contact):
        """A network event does not reset a financial rating with no purchases."""
        boris = metrics.add_contact(key_contact)
        metrics.record_contribution(
            Contribution(contact_id=boris.id, criterion_type=CriterionType.NETWORK, title="Intro")
        )
        assert memory_db.get_contact(boris.id).contribution_details["financial"] == 3

    def test_money_contribution_rolls_into_financial(self, metrics, memory_db, anna):
        """A financial event with an amount is counted as money."""
        metrics.record_contribution(
            Contribution(
                contact_id=anna.id,
                criterion_type=CriterionType.FINANCIAL,
                title="Donation",
                amount=600_000,
            )
        )
        stored = memory_db.get_contact(anna.id)
        assert stored.contribution_details["financial"] == 3
        assert stored.purchase_totals.total_amount == 600_000

    def test_unknown_criterion_rejected(self, metrics, anna):
        """Contribution events must name a known criterion."""
        with pytest.raises(ValidationError):
            metrics.record_contribution(
                Contribution(contact_id=anna.id, criterion_type="loyalty", title="x")
            )

    def test_unknown_purchase(self, metrics):
        """Revising or removing an unknown purchase is a no-op."""
        assert metrics.remove_purchase(99) is None
        assert metrics.revise_purchase(Purchase(id=99, product_name="x")) is None


# =============================================================================
# RECALCULATE ALL
# =============================================================================


class TestRecalculateAll:
    """Test the bulk refresh."""

    def test_counts_every_contact(self, metrics, sample_contact, key_contact):
        """Every stored contact is refreshed."""
        metrics.add_contact(sample_contact)
        metrics.add_contact(key_contact)
        assert metrics.recalculate_all() == 2

    def test_corrupt_record_does_not_stop_the_run(self, metrics, memory_db, sample_contact, key_contact):
        """A contact whose stored details cannot be decoded is skipped."""
        anna = metrics.add_contact(sample_contact)
        metrics.add_contact(key_contact)
        conn = memory_db._get_connection()
        conn.execute("UPDATE contacts SET contribution_details = '{bad' WHERE id = ?", (anna.id,))
        conn.commit()
        assert metrics.recalculate_all() == 1

    def test_picks_up_time_passing(self, memory_db, sample_contact, today):
        """Refreshing later cools a contact down."""
        early = ContactMetrics(memory_db, today=today, default_frequency_days=30)
        contact = early.add_contact(sample_contact)
        early.log_interaction(Interaction(contact_id=contact.id, date=today, is_meaningful=True))

        later = ContactMetrics(memory_db, today=today + timedelta(days=100), default_frequency_days=30)
        later.recalculate_all()
        stored = memory_db.get_contact(contact.id)
        assert stored.heat_status is HeatStatus.RED
        assert stored.last_contact_date == today

    def test_empty_database(self, metrics):
        """Nothing to do returns 0."""
        assert metrics.recalculate_all() == 0
