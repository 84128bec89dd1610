"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class TaskStatus(Enum):
    READY = "ready"
    BLOCKED = "blocked"
    UNBLOCKED = "unblocked"


@dataclass
class Task:
    """A to-do item on the can-do list."""

    id: str
    content: str
    duration_minutes: int | None = None
    project_id: str | None = None
    impact: int | None = None
    urgency: int | None = None
    due_date: date | None = None
    blocked_by: str | None = None
    my_day: bool = False
    completed: bool = False
    parent_task_id: str | None = None

    def days_until_due(self, as_of: date | None = None) -> int | None:
        """Days until due date (negative if overdue)."""
        if not self.due_date:
            return None
        as_of = as_of or date.today()
        return (self.due_date - as_of).days

    def has_signal(self) -> bool:
        """True if the task carries impact, urgency or a due date."""
        return bool(self.impact) or bool(self.urgency) or self.due_date is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "duration_minutes": self.duration_minutes,
            "project_id": self.project_id,
            "impact": self.impact,
            "urgency": self.urgency,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "blocked_by": self.blocked_by,
            "my_day": self.my_day,
            "completed": self.completed,
            "parent_task_id": self.parent_task_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        due = None
        if data.get("due_date"):
            due = date.fromisoformat(data["due_date"].split("T")[0])
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            duration_minutes=data.get("duration_minutes"),
            project_id=data.get("project_id"),
            impact=data.get("impact"),
            urgency=data.get("urgency"),
            due_date=due,
            blocked_by=data.get("blocked_by"),
            my_day=bool(data.get("my_day", False)),
            completed=bool(data.get("completed", False)),
            parent_task_id=data.get("parent_task_id"),
        )


def find_task(tasks: list[Task], task_id: str) -> Task | None:
    return next((t for t in tasks if t.id == task_id), None)


def filter_incomplete(tasks: list[Task]) -> list[Task]:
    return [t for t in tasks if not t.completed]


def filter_my_day(tasks: list[Task]) -> list[Task]:
    """Incomplete tasks pinned to today."""
    return [t for t in tasks if t.my_day and not t.completed]


def filter_overdue(tasks: list[Task], as_of: date | None = None) -> list[Task]:
    """Filter to overdue, incomplete tasks only."""
    as_of = as_of or date.today()
    return [t for t in tasks if not t.completed and t.due_date and t.due_date < as_of]


def filter_by_project(tasks: list[Task], project_id: str) -> list[Task]:
    return [t for t in tasks if t.project_id == project_id]


def subtasks_of(parent_id: str, tasks: list[Task]) -> list[Task]:
    return [t for t in tasks if t.parent_task_id == parent_id]


# ============== Blocking ==============
# `blocked_by` is informational: it ranks and labels tasks but never stops
# one from being scheduled.


def is_actually_blocked(task: Task, all_tasks: list[Task]) -> bool:
    """
    A task is blocked while the task it points at exists and is not done.

    A dangling `blocked_by` reference counts as unblocked.
    """
    if not task.blocked_by:
        return False
    blocker = find_task(all_tasks, task.blocked_by)
    if blocker is None:
        return False
    return not blocker.completed


def effective_status(task: Task, all_tasks: list[Task]) -> TaskStatus:
    if task.completed or not task.blocked_by:
        return TaskStatus.READY
    if is_actually_blocked(task, all_tasks):
        return TaskStatus.BLOCKED
    return TaskStatus.UNBLOCKED


def tasks_blocked_by(blocking_task_id: str, all_tasks: list[Task]) -> list[Task]:
    """Incomplete tasks waiting on the given task."""
    return [t for t in all_tasks if t.blocked_by == blocking_task_id and not t.completed]


def tasks_that_would_become_ready(completed_task_id: str, all_tasks: list[Task]) -> list[Task]:
    """Tasks that completing `completed_task_id` would unblock."""
    return [t for t in tasks_blocked_by(completed_task_id, all_tasks) if is_actually_blocked(t, all_tasks)]
