"""Task repository interface."""

from typing import Protocol

from cando.core.tasks import Task


class TaskRepository(Protocol):
    """Interface for fetching tasks from any backend."""

    def fetch_all(self) -> list[Task]:
        """Fetch all tasks."""
        ...

    def save_tasks(self, tasks: list[Task]) -> None:
        """Insert or replace tasks by id."""
        ...
