"""Tests for contribution_details migration between generations."""

from rapport.db.models import CONTRIBUTION_CRITERIA, DetailsGeneration, ScoreClass
from rapport.engine.migration import legacy_class, migrate_contribution_details


class TestMigrateContributionDetails:
    """Test normalization to the five-criterion shape."""

    def test_legacy_record_gains_new_criteria(self):
        """Missing criteria start at 0; existing ratings carry over."""
        result = migrate_contribution_details(
            {"financial": 3, "network": 3, "trust": 1}, DetailsGeneration.LEGACY_9
        )
        assert result.details == {
            "financial": 3,
            "network": 3,
            "trust": 1,
            "emotional": 0,
            "intellectual": 0,
        }
        assert result.migrated is True

    def test_unknown_keys_dropped(self):
        """Keys the current shape does not know are removed and reported."""
        result = migrate_contribution_details({"financial": 1, "loyalty": 2})
        assert "loyalty" not in result.details
        assert result.dropped == ["loyalty"]
        assert result.migrated is False

    def test_missing_details(self):
        """None migrates to all zeros."""
        result = migrate_contribution_details(None)
        assert result.details == {key: 0 for key in CONTRIBUTION_CRITERIA}

    def test_accepts_generation_value(self):
        """Stored generation strings are accepted."""
        result = migrate_contribution_details({"financial": 1}, "triad_15")
        assert result.source is DetailsGeneration.TRIAD_15


class TestLegacyClass:
    """Test the class a record had under its own rule."""

    def test_nine_point_sum(self):
        """legacy_9 sums three ratings against 7/5/2."""
        details = {"financial": 3, "network": 3, "trust": 1}
        assert legacy_class(details, DetailsGeneration.LEGACY_9) is ScoreClass.A

    def test_triad_uses_weighted_score(self):
        """triad_15 used the weighted 15-point score."""
        details = {"financial": 3, "network": 3, "trust": 1}
        assert legacy_class(details, DetailsGeneration.TRIAD_15) is ScoreClass.B

    def test_previous_class_reported(self):
        """The migration result carries the pre-migration class."""
        result = migrate_contribution_details(
            {"financial": 1, "network": 1, "trust": 0}, DetailsGeneration.LEGACY_9
        )
        assert result.previous_class is ScoreClass.C
