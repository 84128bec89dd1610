"""Ports - interfaces/protocols for external dependencies."""

from .event_repo import EventRepository
from .task_repo import TaskRepository

__all__ = [
    "EventRepository",
    "TaskRepository",
]
