"""Tests for priorities and portfolio analytics."""

from rapport.db.models import Contact, HeatStatus, ImportanceLevel
from rapport.engine.priorities import (
    attention_gap,
    attention_gap_status,
    develop_contacts,
    importance_heat_matrix,
    is_high_value,
    rank_by_priority,
    summarize,
    urgent_contacts,
)


def _contact(name, category="CC", level="C", status="yellow", heat=0.5, **kwargs):
    return Contact(
        full_name=name,
        value_category=category,
        importance_level=ImportanceLevel(level),
        heat_status=HeatStatus(status),
        heat_index=heat,
        **kwargs,
    )


class TestAttentionGap:
    """Test recommended vs actual attention."""

    def test_gap_statuses(self):
        """gap <= 0 green, 1-2 yellow, 3+ red."""
        cases = [(5, 5, HeatStatus.GREEN), (5, 8, HeatStatus.GREEN), (5, 3, HeatStatus.YELLOW),
                 (5, 4, HeatStatus.YELLOW), (8, 5, HeatStatus.RED), (8, 1, HeatStatus.RED)]
        for recommended, actual, expected in cases:
            contact = Contact(recommended_attention_level=recommended, attention_level=actual)
            assert attention_gap_status(contact) is expected

    def test_gap_value(self):
        """Gap is recommended minus actual."""
        contact = Contact(recommended_attention_level=8, attention_level=3)
        assert attention_gap(contact) == 5


class TestSummary:
    """Test portfolio stats and matrix."""

    def test_counts(self):
        """Counts per heat status, A-tier count and average heat."""
        contacts = [
            _contact("a", level="A", status="green", heat=0.9),
            _contact("b", level="A", status="red", heat=0.1),
            _contact("c", level="B", status="yellow", heat=0.5),
        ]
        stats = summarize(contacts)
        assert (stats.total, stats.green, stats.yellow, stats.red) == (3, 1, 1, 1)
        assert stats.importance_a == 2
        assert abs(stats.avg_heat_index - 0.5) < 1e-9
        assert stats.matrix["A"]["red"] == 1
        assert stats.matrix["C"]["green"] == 0

    def test_empty(self):
        """Empty portfolio has zero average."""
        stats = summarize([])
        assert stats.total == 0
        assert stats.avg_heat_index == 0.0

    def test_matrix_has_every_cell(self):
        """All nine cells are present."""
        matrix = importance_heat_matrix([])
        assert set(matrix) == {"A", "B", "C"}
        assert all(set(row) == {"green", "yellow", "red"} for row in matrix.values())


class TestPriorityLists:
    """Test urgent/develop lists and ranking."""

    def test_high_value(self):
        """A* and BA count as high value; AB via the A prefix."""
        assert is_high_value(_contact("x", category="AD"))
        assert is_high_value(_contact("x", category="BA"))
        assert not is_high_value(_contact("x", category="BB"))

    def test_urgent_is_red_high_value(self):
        """Urgent means red and high value."""
        contacts = [
            _contact("cold-key", category="AA", status="red"),
            _contact("cold-minor", category="CC", status="red"),
            _contact("warm-key", category="AB", status="green"),
        ]
        assert [c.full_name for c in urgent_contacts(contacts)] == ["cold-key"]

    def test_develop_is_yellow_high_value(self):
        """Develop means yellow and high value."""
        contacts = [
            _contact("cooling", category="BA", status="yellow"),
            _contact("cold", category="BA", status="red"),
        ]
        assert [c.full_name for c in develop_contacts(contacts)] == ["cooling"]

    def test_rank_by_importance_then_coldest(self):
        """Tier A first, and within a tier the coldest first."""
        contacts = [
            _contact("b-warm", level="B", heat=0.8),
            _contact("a-warm", level="A", heat=0.9),
            _contact("a-cold", level="A", heat=0.2),
        ]
        assert [c.full_name for c in rank_by_priority(contacts)] == ["a-cold", "a-warm", "b-warm"]
