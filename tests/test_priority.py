"""Tests for priority calculation and priority hashtags."""

import pytest

from cando.core.priority import calculate_priority, parse_priority_from_content, priority_label, urgency_level


class TestCalculatePriority:
    @pytest.mark.parametrize(
        "impact,urgency,expected",
        [
            (8, 4, 6),
            (7, 8, 8),
            (1, 2, 2),
            (10, 10, 10),
            (5, None, 5),
            (None, 3, 3),
            (0, 4, 4),
            (None, None, None),
            (0, 0, None),
        ],
    )
    def test_combinations(self, impact, urgency, expected):
        assert calculate_priority(impact, urgency) == expected

    def test_label(self):
        assert priority_label(6) == "P6"
        assert priority_label(None) is None
        assert priority_label(0) is None


class TestUrgencyLevel:
    @pytest.mark.parametrize(
        "urgency,expected",
        [(None, "none"), (0, "none"), (1, "low"), (3, "low"), (4, "medium"), (6, "medium"), (8, "high"), (9, "critical")],
    )
    def test_buckets(self, urgency, expected):
        assert urgency_level(urgency) == expected


class TestParsePriority:
    def test_combined_tag(self):
        parsed = parse_priority_from_content("Write report #i7u3")
        assert (parsed.content, parsed.impact, parsed.urgency) == ("Write report", 7, 3)

    def test_separate_tags(self):
        parsed = parse_priority_from_content("#i7 Write #u3 report")
        assert (parsed.content, parsed.impact, parsed.urgency) == ("Write report", 7, 3)

    def test_p_tag_sets_both(self):
        parsed = parse_priority_from_content("Call bank #p5")
        assert (parsed.impact, parsed.urgency) == (5, 5)
        assert parsed.content == "Call bank"

    def test_first_tag_wins(self):
        parsed = parse_priority_from_content("Task #i2u2 #i9u9")
        assert (parsed.impact, parsed.urgency) == (2, 2)
        assert parsed.content == "Task"

    def test_out_of_range_left_alone(self):
        parsed = parse_priority_from_content("Task #i11")
        assert parsed.impact is None
        assert parsed.content == "Task #i11"

    def test_case_insensitive(self):
        assert parse_priority_from_content("Task #I4U6").urgency == 6

    def test_no_tags(self):
        parsed = parse_priority_from_content("Plain task")
        assert (parsed.content, parsed.impact, parsed.urgency) == ("Plain task", None, None)
