"""Shared workflow layer between the CLI and storage.

Each function loads a snapshot from the store, runs the pure core over it,
persists whatever the core returned, and hands the result back.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable

from .adapters.json_store import JsonSnapshotStore
from .config import Config
from .core import scheduling
from .core.calendar import Event, TimeSlot, new_event_id
from .core.errors import NotFoundError, ValidationError
from .core.hashtags import parse_task_content
from .core.recommendation import calculate_recommendation_score, get_recommendation_reason, get_recommended_tasks
from .core.recurrence import Occurrence, expand_all
from .core.series import MutationAction, MutationResult, MutationScope, run_mutation
from .core.tasks import Task, filter_incomplete, filter_my_day, filter_overdue, find_task
from .ports import EventRepository, TaskRepository

logger = logging.getLogger(__name__)


def get_store(config: Config) -> JsonSnapshotStore:
    """Resolve the snapshot file from config."""
    return JsonSnapshotStore(config.data_path)


# ============== Agenda ==============


@dataclass
class AgendaData:
    """Everything shown for a span of days."""

    start: date
    days: int
    occurrences: list[Occurrence] = field(default_factory=list)
    my_day: list[Task] = field(default_factory=list)
    overdue: list[Task] = field(default_factory=list)
    due_soon: list[Task] = field(default_factory=list)


def agenda(
    config: Config,
    events: EventRepository,
    tasks: TaskRepository,
    start: date | None = None,
    days: int = 1,
) -> AgendaData:
    """Occurrences on visible calendars plus the tasks that need attention."""
    start = start or date.today()
    range_start = datetime.combine(start, time.min)
    range_end = datetime.combine(start + timedelta(days=days - 1), time.max)

    occurrences = expand_all(events.fetch_events(), range_start, range_end, events.fetch_calendars())

    all_tasks = tasks.fetch_all()
    open_tasks = filter_incomplete(all_tasks)
    due_soon = [
        t for t in open_tasks
        if t.due_date is not None and 0 <= (t.due_date - start).days <= config.urgent_days
    ]
    return AgendaData(
        start=start,
        days=days,
        occurrences=occurrences,
        my_day=filter_my_day(all_tasks),
        overdue=filter_overdue(all_tasks, as_of=start),
        due_soon=sorted(due_soon, key=lambda t: t.due_date),
    )


# ============== Scheduling ==============


def next_free_slot(
    config: Config,
    events: EventRepository,
    duration_minutes: int | None = None,
    now: datetime | None = None,
) -> TimeSlot | None:
    """Earliest free slot using the configured horizon, snapping and work hours."""
    if duration_minutes is None:
        duration_minutes = config.default_task_duration
    return scheduling.find_next_free_slot(
        duration_minutes,
        events.fetch_calendars(),
        events.fetch_events(),
        horizon_days=config.horizon_days,
        now=now,
        snap_minutes=config.snap_minutes,
        work_hours=config.work_hours_range(),
        include_read_only=config.include_read_only_busy,
    )


def schedule_task(
    config: Config,
    events: EventRepository,
    tasks: TaskRepository,
    task_id: str,
    calendar_id: str | None = None,
    now: datetime | None = None,
    id_factory: Callable[[], str] = new_event_id,
) -> Event | None:
    """Book the next free slot for a task and save the new event. None if no room."""
    task = find_task(tasks.fetch_all(), task_id)
    if task is None:
        raise NotFoundError(f"Task {task_id!r} not found")
    if task.completed:
        raise ValidationError(f"Task {task_id!r} is already completed")

    event = scheduling.schedule_task(
        task,
        events.fetch_calendars(),
        events.fetch_events(),
        calendar_id=calendar_id,
        now=now,
        horizon_days=config.horizon_days,
        snap_minutes=config.snap_minutes,
        work_hours=config.work_hours_range(),
        default_duration=config.default_task_duration,
        include_read_only=config.include_read_only_busy,
        id_factory=id_factory,
    )
    if event is None:
        logger.info(f"No slot found for task {task_id}")
        return None

    events.save_events([event])
    logger.info(f"Scheduled task {task_id} at {event.start.isoformat()} as event {event.id}")
    return event


# ============== Tasks ==============


@dataclass
class Recommendation:
    task: Task
    score: int
    reason: str


def recommend(
    config: Config,
    tasks: TaskRepository,
    limit: int | None = None,
    as_of: date | None = None,
) -> list[Recommendation]:
    """Top tasks with their scores and a short reason for each."""
    as_of = as_of or date.today()
    all_tasks = tasks.fetch_all()
    if limit is None:
        limit = config.recommendation_limit
    ranked = get_recommended_tasks(all_tasks, limit=limit, as_of=as_of)
    return [
        Recommendation(
            task=t,
            score=calculate_recommendation_score(t, all_tasks, as_of),
            reason=get_recommendation_reason(t, all_tasks, as_of),
        )
        for t in ranked
    ]


def add_task(
    tasks: TaskRepository,
    text: str,
    today: date | None = None,
    id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
) -> Task:
    """Create a task from quick-entry text with hashtags."""
    parsed = parse_task_content(text, today)
    if not parsed.content:
        raise ValidationError("Task text is empty once tags are removed")

    task = Task(
        id=id_factory(),
        content=parsed.content,
        duration_minutes=parsed.duration_minutes,
        impact=parsed.impact,
        urgency=parsed.urgency,
        due_date=parsed.due_date,
    )
    tasks.save_tasks([task])
    logger.info(f"Added task {task.id}: {task.content}")
    return task


# ============== Series ==============


def mutate_series(
    events: EventRepository,
    action: MutationAction | str,
    scope: MutationScope | str,
    series_id: str,
    occurrence_start: datetime,
    changes: dict | None = None,
    id_factory: Callable[[], str] = new_event_id,
) -> MutationResult:
    """Run one series mutation and persist its replacements in a single write."""
    result = run_mutation(action, scope, series_id, occurrence_start, events.fetch_events(), changes, id_factory)
    if result.success:
        events.apply_event_changes(result.updated_events, result.deleted_event_ids)
    return result
