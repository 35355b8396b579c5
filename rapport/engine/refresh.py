"""Contact metrics service - storage-facing entry points of the cascade.

Each operation writes the user's change, rebuilds the event from what
is now persisted, runs the recalculation pipeline and writes the
derived fields back. Input is validated here, at the boundary; the
pure stages below assume it is clean.

Usage:
    from rapport.engine.refresh import ContactMetrics

    metrics = ContactMetrics(db)
    contact = metrics.add_contact(Contact(full_name="Anna Petrova"))
    metrics.log_interaction(Interaction(contact_id=contact.id, date=date.today(), is_meaningful=True))
"""

from dataclasses import replace
from datetime import date
from typing import Any, Mapping, Optional

from rapport.core.config import get_config
from rapport.core.exceptions import ValidationError
from rapport.core.logging import get_logger
from rapport.db.database import Database
from rapport.db.models import (
    Contact,
    Contribution,
    CriterionType,
    Interaction,
    Purchase,
    validate_contact,
    validate_contact_fields,
)
from rapport.engine.recalculation import (
    ContactCreated,
    ContactEdited,
    ContributionsChanged,
    Event,
    FullRefresh,
    InteractionAdded,
    InteractionRemoved,
    PurchasesChanged,
    Recalculation,
    RecalculationPipeline,
)
from rapport.engine.rollups import counts_as_money
from rapport.engine.rules import DEFAULT_RULES, ScoringRules

logger = get_logger(__name__)


def _check_interaction(interaction: Interaction) -> None:
    if interaction.date is None:
        raise ValidationError("Interaction date is required")


def _check_contribution(contribution: Contribution) -> None:
    try:
        CriterionType(contribution.criterion_type)
    except ValueError as e:
        raise ValidationError(f"Unknown criterion type: {contribution.criterion_type}") from e
    if not contribution.title:
        raise ValidationError("Contribution title is required")


def _check_purchase(purchase: Purchase) -> None:
    if not purchase.product_name:
        raise ValidationError("Purchase product_name is required")


class ContactMetrics:
    """Keeps a contact's derived fields in step with its records.

    Attributes:
        db: Database instance
        rules: Scoring constants
        today: Reference date for recency (None means the current day)
        default_frequency_days: Cadence given to new contacts without one
    """

    def __init__(
        self,
        db: Database,
        rules: ScoringRules = DEFAULT_RULES,
        today: Optional[date] = None,
        default_frequency_days: Optional[int] = None,
    ):
        self.db = db
        self.rules = rules
        self.today = today
        if default_frequency_days is None:
            default_frequency_days = get_config().default_frequency_days
        self.default_frequency_days = default_frequency_days
        self._pipeline = RecalculationPipeline(rules, today)

    def _run(self, existing: Optional[Contact], event: Event) -> Optional[Recalculation]:
        result = self._pipeline.run(existing, event)
        if result is not None and result.contact.id is not None and result.changed_fields:
            self.db.save_derived(result.contact)
        return result

    def _contact_or_none(self, contact_id: int, action: str) -> Optional[Contact]:
        contact = self.db.get_contact(contact_id)
        if contact is None:
            logger.warning(
                "Contact not found",
                extra={"context": {"contact_id": contact_id, "action": action}},
            )
        return contact

    # =========================================================================
    # CONTACTS
    # =========================================================================

    def add_contact(self, contact: Contact) -> Contact:
        """Score a new contact and persist it.

        Raises:
            ValidationError: If the contact cannot be scored
        """
        validate_contact(contact)
        if contact.desired_frequency_days is None:
            contact = replace(contact, desired_frequency_days=self.default_frequency_days)
        result = self._pipeline.run(None, ContactCreated(contact))
        assert result is not None
        created = result.contact
        created.id = self.db.create_contact(created)
        return created

    def edit_contact(self, contact_id: int, changes: Mapping[str, Any]) -> Optional[Contact]:
        """Apply a partial update and rescore.

        Args:
            contact_id: Contact to update
            changes: Field values; detail records are merged per key

        Returns:
            Updated contact, or None if it does not exist

        Raises:
            ValidationError: If a present value is out of range
        """
        validate_contact_fields(changes)
        if "full_name" in changes and not (changes["full_name"] or "").strip():
            raise ValidationError("full_name is required")

        existing = self._contact_or_none(contact_id, "edit")
        if existing is None:
            return None

        result = self._pipeline.run(existing, ContactEdited(changes))
        assert result is not None
        self.db.update_contact(result.contact)
        return result.contact

    def refresh_contact(self, contact_id: int) -> Optional[Contact]:
        """Re-derive last contact, scores and heat from stored records."""
        existing = self._contact_or_none(contact_id, "refresh")
        if existing is None:
            return None
        result = self._run(existing, FullRefresh(self.db.get_interactions(contact_id)))
        return result.contact if result else None

    def recalculate_all(self) -> int:
        """Refresh every contact.

        A failure on one contact is logged and does not stop the run.

        Returns:
            Number of contacts refreshed
        """
        count = 0
        failed = 0

        for contact_id in self.db.get_contact_ids():
            try:
                if self.refresh_contact(contact_id) is not None:
                    count += 1
            except Exception as e:
                failed += 1
                logger.error(
                    f"Contact refresh failed: {e}",
                    extra={
                        "context": {
                            "contact_id": contact_id,
                            "error_type": type(e).__name__,
                            "error": str(e),
                        }
                    },
                )

        logger.info(
            "Recalculation complete",
            extra={"context": {"recalculated": count, "failed": failed}},
        )
        return count

    # =========================================================================
    # INTERACTIONS
    # =========================================================================

    def log_interaction(self, interaction: Interaction) -> Optional[Contact]:
        """Store an interaction and move the last-contact clock if it counts."""
        _check_interaction(interaction)
        existing = self._contact_or_none(interaction.contact_id, "log_interaction")
        if existing is None:
            return None

        interaction.id = self.db.create_interaction(interaction)
        result = self._run(existing, InteractionAdded(interaction))
        return result.contact if result else None

    def remove_interaction(self, interaction_id: int) -> Optional[Contact]:
        """Delete an interaction and recompute last contact from the rest."""
        interaction = self.db.get_interaction(interaction_id)
        if interaction is None:
            return None

        contact_id = interaction.contact_id
        self.db.delete_interaction(interaction_id)
        existing = self._contact_or_none(contact_id, "remove_interaction")
        if existing is None:
            return None
        result = self._run(existing, InteractionRemoved(self.db.get_interactions(contact_id)))
        return result.contact if result else None

    # =========================================================================
    # LEDGER (PURCHASES AND CONTRIBUTION EVENTS)
    # =========================================================================

    def _purchases_changed(self, contact_id: int) -> Optional[Contact]:
        existing = self._contact_or_none(contact_id, "purchases")
        if existing is None:
            return None
        event = PurchasesChanged(
            purchases=self.db.get_purchases(contact_id),
            contributions=self.db.get_contributions(contact_id),
        )
        result = self._run(existing, event)
        return result.contact if result else None

    def _contributions_changed(
        self, contact_id: int, *changed: Contribution
    ) -> Optional[Contact]:
        existing = self._contact_or_none(contact_id, "contributions")
        if existing is None:
            return None
        event = ContributionsChanged(
            contributions=self.db.get_contributions(contact_id),
            purchases=self.db.get_purchases(contact_id),
            affects_money=any(counts_as_money(c) for c in changed),
        )
        result = self._run(existing, event)
        return result.contact if result else None

    def record_purchase(self, purchase: Purchase) -> Optional[Contact]:
        """Store a purchase and roll money into the financial rating."""
        _check_purchase(purchase)
        if self._contact_or_none(purchase.contact_id, "record_purchase") is None:
            return None
        purchase.id = self.db.create_purchase(purchase)
        return self._purchases_changed(purchase.contact_id)

    def revise_purchase(self, purchase: Purchase) -> Optional[Contact]:
        """Update a stored purchase and re-run the money roll-up."""
        _check_purchase(purchase)
        stored = self.db.get_purchase(purchase.id) if purchase.id is not None else None
        if stored is None:
            return None
        self.db.update_purchase(purchase)
        return self._purchases_changed(stored.contact_id)

    def remove_purchase(self, purchase_id: int) -> Optional[Contact]:
        """Delete a purchase and re-run the money roll-up."""
        purchase = self.db.get_purchase(purchase_id)
        if purchase is None:
            return None
        self.db.delete_purchase(purchase_id)
        return self._purchases_changed(purchase.contact_id)

    def record_contribution(self, contribution: Contribution) -> Optional[Contact]:
        """Store a contribution event and re-run the event roll-up."""
        _check_contribution(contribution)
        if self._contact_or_none(contribution.contact_id, "record_contribution") is None:
            return None
        contribution.id = self.db.create_contribution(contribution)
        return self._contributions_changed(contribution.contact_id, contribution)

    def revise_contribution(self, contribution: Contribution) -> Optional[Contact]:
        """Update a stored contribution event and re-run the event roll-up."""
        _check_contribution(contribution)
        stored = (
            self.db.get_contribution(contribution.id) if contribution.id is not None else None
        )
        if stored is None:
            return None
        self.db.update_contribution(contribution)
        return self._contributions_changed(stored.contact_id, stored, contribution)

    def remove_contribution(self, contribution_id: int) -> Optional[Contact]:
        """Delete a contribution event and re-run the event roll-up."""
        contribution = self.db.get_contribution(contribution_id)
        if contribution is None:
            return None
        self.db.delete_contribution(contribution_id)
        return self._contributions_changed(contribution.contact_id, contribution)
