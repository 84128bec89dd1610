"""Tests for core task logic."""

from datetime import date, timedelta

import pytest

from cando.core.tasks import (
    Task,
    TaskStatus,
    effective_status,
    filter_by_project,
    filter_incomplete,
    filter_my_day,
    filter_overdue,
    find_task,
    is_actually_blocked,
    subtasks_of,
    tasks_blocked_by,
    tasks_that_would_become_ready,
)


# Fixtures
@pytest.fixture
def today():
    return date(2025, 1, 15)


@pytest.fixture
def sample_tasks(today):
    """Sample tasks covering various scenarios."""
    return [
        Task(id="1", content="Ship release", impact=9, urgency=8, due_date=today, project_id="p1", my_day=True),
        Task(id="2", content="Write changelog", blocked_by="1", project_id="p1"),
        Task(id="3", content="Book flights", due_date=today - timedelta(days=2), project_id="p2"),
        Task(id="4", content="Old chore", due_date=today - timedelta(days=5), completed=True, my_day=True),
        Task(id="5", content="Draft post", blocked_by="4", parent_task_id="1"),
        Task(id="6", content="Review PR", blocked_by="missing", parent_task_id="1"),
    ]


class TestTask:
    def test_days_until_due(self, today):
        task = Task(id="1", content="Test", due_date=today + timedelta(days=3))
        assert task.days_until_due(as_of=today) == 3

    def test_days_until_due_overdue(self, today):
        task = Task(id="1", content="Test", due_date=today - timedelta(days=2))
        assert task.days_until_due(as_of=today) == -2

    def test_days_until_due_none(self, today):
        assert Task(id="1", content="Test").days_until_due(as_of=today) is None

    def test_has_signal(self, today):
        assert Task(id="1", content="Test", impact=3).has_signal()
        assert Task(id="1", content="Test", due_date=today).has_signal()
        assert not Task(id="1", content="Test", impact=0, urgency=0).has_signal()

    def test_dict_round_trip(self, today):
        task = Task(id="1", content="Test", impact=4, due_date=today, blocked_by="2", my_day=True)
        assert Task.from_dict(task.to_dict()) == task

    def test_from_dict_accepts_datetime_due(self):
        task = Task.from_dict({"id": "1", "content": "Test", "due_date": "2025-01-20T00:00:00"})
        assert task.due_date == date(2025, 1, 20)


class TestFilters:
    def test_filter_incomplete(self, sample_tasks):
        assert [t.id for t in filter_incomplete(sample_tasks)] == ["1", "2", "3", "5", "6"]

    def test_filter_my_day(self, sample_tasks):
        assert [t.id for t in filter_my_day(sample_tasks)] == ["1"]

    def test_filter_overdue(self, sample_tasks, today):
        assert [t.id for t in filter_overdue(sample_tasks, as_of=today)] == ["3"]

    def test_filter_by_project(self, sample_tasks):
        assert [t.id for t in filter_by_project(sample_tasks, "p1")] == ["1", "2"]

    def test_subtasks_of(self, sample_tasks):
        assert [t.id for t in subtasks_of("1", sample_tasks)] == ["5", "6"]

    def test_find_task(self, sample_tasks):
        assert find_task(sample_tasks, "3").content == "Book flights"
        assert find_task(sample_tasks, "nope") is None


class TestBlocking:
    def test_blocked_by_open_task(self, sample_tasks):
        assert is_actually_blocked(sample_tasks[1], sample_tasks) is True
        assert effective_status(sample_tasks[1], sample_tasks) is TaskStatus.BLOCKED

    def test_blocker_completed(self, sample_tasks):
        assert is_actually_blocked(sample_tasks[4], sample_tasks) is False
        assert effective_status(sample_tasks[4], sample_tasks) is TaskStatus.UNBLOCKED

    def test_dangling_reference(self, sample_tasks):
        assert is_actually_blocked(sample_tasks[5], sample_tasks) is False
        assert effective_status(sample_tasks[5], sample_tasks) is TaskStatus.UNBLOCKED

    def test_ready_without_blocker(self, sample_tasks):
        assert effective_status(sample_tasks[0], sample_tasks) is TaskStatus.READY

    def test_tasks_blocked_by(self, sample_tasks):
        assert [t.id for t in tasks_blocked_by("1", sample_tasks)] == ["2"]

    def test_tasks_that_would_become_ready(self, sample_tasks):
        assert [t.id for t in tasks_that_would_become_ready("1", sample_tasks)] == ["2"]
        assert tasks_that_would_become_ready("4", sample_tasks) == []
