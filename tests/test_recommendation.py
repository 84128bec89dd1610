"""Tests for task recommendation scoring."""

from datetime import date, timedelta

import pytest

from cando.core.recommendation import (
    calculate_recommendation_score,
    due_date_bonus,
    get_recommendation_reason,
    get_recommended_tasks,
)
from cando.core.tasks import Task


@pytest.fixture
def today():
    return date(2025, 1, 15)


def task(id, **kwargs):
    return Task(id=id, content=kwargs.pop("content", f"Task {id}"), **kwargs)


class TestScore:
    def test_impact_plus_urgency(self, today):
        assert calculate_recommendation_score(task("1", impact=8, urgency=5), [], today) == 13

    def test_missing_values_are_zero(self, today):
        assert calculate_recommendation_score(task("1", impact=4), [], today) == 4

    @pytest.mark.parametrize("days,bonus", [(-3, 15), (0, 12), (1, 8), (3, 5), (7, 2), (8, 0)])
    def test_due_bonus(self, today, days, bonus):
        assert due_date_bonus(task("1", due_date=today + timedelta(days=days)), today) == bonus

    def test_closer_due_never_scores_lower(self, today):
        scores = [
            calculate_recommendation_score(task("1", impact=3, due_date=today + timedelta(days=d)), [], today)
            for d in range(10, -3, -1)
        ]
        assert scores == sorted(scores)

    def test_blocking_bonus(self, today):
        blocker = task("a", impact=1)
        blocked = task("b", impact=9, urgency=9, blocked_by="a")
        assert calculate_recommendation_score(blocker, [blocker, blocked], today) == 1 + 18 + 5

    def test_completed_blocked_tasks_ignored(self, today):
        blocker = task("a", impact=1)
        blocked = task("b", impact=9, urgency=9, blocked_by="a", completed=True)
        assert calculate_recommendation_score(blocker, [blocker, blocked], today) == 1


class TestRecommendedTasks:
    def test_sorted_by_score(self, today):
        tasks = [task("low", impact=2), task("high", impact=9, urgency=9), task("mid", impact=5)]
        assert [t.id for t in get_recommended_tasks(tasks, as_of=today)] == ["high", "mid", "low"]

    def test_blocker_ranks_above_blocked(self, today):
        tasks = [task("b", impact=9, urgency=9, blocked_by="a"), task("a", impact=1)]
        assert [t.id for t in get_recommended_tasks(tasks, as_of=today)] == ["a", "b"]

    def test_excludes_completed_and_signal_free(self, today):
        tasks = [task("done", impact=9, completed=True), task("plain"), task("due", due_date=today)]
        assert [t.id for t in get_recommended_tasks(tasks, as_of=today)] == ["due"]

    def test_ties_keep_input_order(self, today):
        tasks = [task("x", impact=5), task("y", urgency=5), task("z", impact=5)]
        assert [t.id for t in get_recommended_tasks(tasks, as_of=today)] == ["x", "y", "z"]

    def test_limit(self, today):
        tasks = [task(str(i), impact=i) for i in range(1, 10)]
        assert len(get_recommended_tasks(tasks, limit=3, as_of=today)) == 3
        assert get_recommended_tasks(tasks, limit=0, as_of=today) == []


class TestReason:
    def test_high_impact_and_urgency(self, today):
        assert get_recommendation_reason(task("1", impact=9, urgency=8), [], today) == "High impact & urgency"

    def test_ordered_by_contribution(self, today):
        reason = get_recommendation_reason(task("1", impact=3, due_date=today), [], today)
        assert reason == "Due today, Low impact"

    def test_blocks_important(self, today):
        blocker = task("a")
        blocked = task("b", impact=9, blocked_by="a")
        assert get_recommendation_reason(blocker, [blocker, blocked], today) == "Blocks important tasks"

    def test_blocks_count(self, today):
        blocker = task("a", impact=2)
        others = [task("b", impact=1, blocked_by="a"), task("c", impact=1, blocked_by="a")]
        assert get_recommendation_reason(blocker, [blocker, *others], today) == "Blocks 2 tasks, Low impact"

    def test_overdue(self, today):
        assert get_recommendation_reason(task("1", due_date=today - timedelta(days=1)), [], today) == "Overdue"

    def test_no_signals(self, today):
        assert get_recommendation_reason(task("1"), [], today) == "No priority signals"
