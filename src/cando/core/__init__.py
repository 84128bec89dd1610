"""Functional core - pure business logic with no I/O."""

from .errors import CandoError, NotFoundError, InvalidRuleError, ValidationError
from .calendar import Calendar, Event, Frequency, RecurrenceRule, TimeSlot
from .exception_store import ExceptionEntry, ExceptionKind
from .recurrence import Occurrence, expand, expand_all, find_occurrence
from .series import MutationAction, MutationResult, MutationScope, run_mutation
from .scheduling import find_free_slots, find_next_free_slot, schedule_task
from .tasks import Task, TaskStatus, effective_status
from .priority import calculate_priority, parse_priority_from_content
from .recommendation import calculate_recommendation_score, get_recommended_tasks, get_recommendation_reason
from .hashtags import ParsedTask, parse_task_content

__all__ = [
    # Errors
    "CandoError",
    "NotFoundError",
    "InvalidRuleError",
    "ValidationError",
    # Calendar
    "Calendar",
    "Event",
    "Frequency",
    "RecurrenceRule",
    "TimeSlot",
    # Recurrence
    "ExceptionEntry",
    "ExceptionKind",
    "Occurrence",
    "expand",
    "expand_all",
    "find_occurrence",
    # Series
    "MutationAction",
    "MutationResult",
    "MutationScope",
    "run_mutation",
    # Scheduling
    "find_free_slots",
    "find_next_free_slot",
    "schedule_task",
    # Tasks
    "Task",
    "TaskStatus",
    "effective_status",
    "calculate_priority",
    "parse_priority_from_content",
    "calculate_recommendation_score",
    "get_recommended_tasks",
    "get_recommendation_reason",
    "ParsedTask",
    "parse_task_content",
]
