"""Free-slot search and task scheduling - pure functions, no I/O.

Returns the first slot that fits, not the best one. Results depend only on
the arguments (pass `now` explicitly for reproducible output).
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterator

from .calendar import Calendar, Event, TimeSlot, new_event_id, validate_event
from .errors import NotFoundError, ValidationError
from .recurrence import expand_all
from .tasks import Task

logger = logging.getLogger(__name__)

DEFAULT_TASK_DURATION = 60


def snap_to_next_tick(dt: datetime, minutes: int = 15) -> datetime:
    """
    Round up to the next multiple of `minutes` past midnight.

    Instants already on a tick are returned unchanged.
    """
    if minutes <= 0:
        return dt
    midnight = datetime.combine(dt.date(), time.min)
    tick = timedelta(minutes=minutes)
    ticks = -(-(dt - midnight) // tick)
    return midnight + ticks * tick


def busy_intervals(
    events: list[Event],
    calendars: list[Calendar],
    window_start: datetime,
    window_end: datetime,
    include_read_only: bool = False,
) -> list[TimeSlot]:
    """
    Time taken by events on visible calendars, clipped to the window.

    Read-only (imported) calendars count only with `include_read_only`.
    All-day events do not block time.
    """
    occurrences = expand_all(events, window_start, window_end, calendars, include_read_only)
    return [
        TimeSlot(max(o.start, window_start), min(o.end, window_end))
        for o in occurrences
        if not o.all_day and o.end > window_start and o.start < window_end
    ]


def merge_intervals(intervals: list[TimeSlot]) -> list[TimeSlot]:
    """Sort by start and fuse overlapping or touching intervals."""
    merged: list[TimeSlot] = []
    for slot in sorted(intervals, key=lambda s: (s.start, s.end)):
        if merged and slot.start <= merged[-1].end:
            if slot.end > merged[-1].end:
                merged[-1] = TimeSlot(merged[-1].start, slot.end)
        else:
            merged.append(TimeSlot(slot.start, slot.end))
    return merged


def off_hours(window_start: datetime, window_end: datetime, work_hours: tuple[int, int]) -> list[TimeSlot]:
    """Blocks outside daily working hours, for every day the window touches."""
    start_hour, end_hour = work_hours
    blocks = []
    day = window_start.date()
    while day <= window_end.date():
        midnight = datetime.combine(day, time.min)
        blocks.append(TimeSlot(midnight, midnight + timedelta(hours=start_hour)))
        blocks.append(TimeSlot(midnight + timedelta(hours=end_hour), midnight + timedelta(days=1)))
        day += timedelta(days=1)
    return blocks


def _iter_gaps(
    busy: list[TimeSlot],
    window_start: datetime,
    window_end: datetime,
    min_duration: int,
    snap_minutes: int,
) -> Iterator[TimeSlot]:
    needed = timedelta(minutes=min_duration)
    current = snap_to_next_tick(window_start, snap_minutes)

    for block in merge_intervals(busy):
        if block.end <= current:
            continue
        if block.start > current and block.start - current >= needed:
            yield TimeSlot(current, block.start)
        current = max(current, snap_to_next_tick(block.end, snap_minutes))
        if current >= window_end:
            return

    if window_end - current >= needed:
        yield TimeSlot(current, window_end)


def find_free_slots(
    busy: list[TimeSlot],
    window_start: datetime,
    window_end: datetime,
    min_duration: int = 30,
    snap_minutes: int = 15,
) -> list[TimeSlot]:
    """
    Find free gaps between busy intervals.

    Gap starts are rounded up to the next `snap_minutes` tick. Only gaps at
    least `min_duration` minutes wide are returned.
    """
    return list(_iter_gaps(busy, window_start, window_end, min_duration, snap_minutes))


def find_next_free_slot(
    duration_minutes: int,
    calendars: list[Calendar],
    events: list[Event],
    horizon_days: int = 7,
    now: datetime | None = None,
    snap_minutes: int = 15,
    work_hours: tuple[int, int] | None = None,
    include_read_only: bool = False,
) -> TimeSlot | None:
    """
    Earliest slot of `duration_minutes` within the next `horizon_days`.

    Returns None when nothing fits; that is "not found", not an error.
    """
    if duration_minutes <= 0:
        raise ValidationError(f"Duration must be positive, got {duration_minutes}")

    now = now or datetime.now()
    window_end = now + timedelta(days=horizon_days)
    busy = busy_intervals(events, calendars, now, window_end, include_read_only)
    if work_hours:
        busy.extend(off_hours(now, window_end, work_hours))

    gap = next(_iter_gaps(busy, now, window_end, duration_minutes, snap_minutes), None)
    if gap is None:
        logger.info(f"No {duration_minutes} min slot in the next {horizon_days} days")
        return None
    return TimeSlot(gap.start, gap.start + timedelta(minutes=duration_minutes))


def available_slots_for_day(
    day: date,
    duration_minutes: int,
    calendars: list[Calendar],
    events: list[Event],
    now: datetime | None = None,
    snap_minutes: int = 15,
    include_read_only: bool = False,
) -> list[TimeSlot]:
    """
    One candidate slot per free gap on a given day.

    On the current day the search starts at `now`; past days have none.
    """
    if duration_minutes <= 0:
        raise ValidationError(f"Duration must be positive, got {duration_minutes}")

    now = now or datetime.now()
    day_start = datetime.combine(day, time.min)
    day_end = day_start + timedelta(days=1)
    if now >= day_end:
        return []
    window_start = max(day_start, now)

    busy = busy_intervals(events, calendars, window_start, day_end, include_read_only)
    gaps = find_free_slots(busy, window_start, day_end, duration_minutes, snap_minutes)
    return [TimeSlot(g.start, g.start + timedelta(minutes=duration_minutes)) for g in gaps]


def pick_target_calendar(calendars: list[Calendar], calendar_id: str | None = None) -> Calendar | None:
    """
    Calendar a new event should land in.

    An explicit id must name a writable calendar. Otherwise the default
    writable calendar, then the first visible writable one.
    """
    if calendar_id is not None:
        target = next((c for c in calendars if c.id == calendar_id), None)
        if target is None:
            raise NotFoundError(f"Calendar {calendar_id!r} not found")
        if target.read_only:
            raise ValidationError(f"Calendar {calendar_id!r} is read-only")
        return target

    writable = [c for c in calendars if not c.read_only]
    return next((c for c in writable if c.is_default), None) or next((c for c in writable if c.visible), None)


def create_event_from_task(
    task: Task,
    calendar_id: str,
    start: datetime,
    id_factory: Callable[[], str] = new_event_id,
    default_duration: int = DEFAULT_TASK_DURATION,
) -> Event:
    """A standalone event blocking time for a task."""
    duration = task.duration_minutes or default_duration
    event = Event(
        id=id_factory(),
        title=task.content,
        start=start,
        end=start + timedelta(minutes=duration),
        calendar_id=calendar_id,
        description=f"Created from task: {task.content}",
        task_id=task.id,
    )
    validate_event(event)
    return event


def schedule_task(
    task: Task,
    calendars: list[Calendar],
    events: list[Event],
    calendar_id: str | None = None,
    now: datetime | None = None,
    horizon_days: int = 7,
    snap_minutes: int = 15,
    work_hours: tuple[int, int] | None = None,
    default_duration: int = DEFAULT_TASK_DURATION,
    include_read_only: bool = False,
    id_factory: Callable[[], str] = new_event_id,
) -> Event | None:
    """
    Place a task in the next free slot.

    Returns the new event, or None if no slot or no writable calendar exists.
    """
    target = pick_target_calendar(calendars, calendar_id)
    if target is None:
        logger.warning("No writable calendar to schedule into")
        return None

    slot = find_next_free_slot(
        task.duration_minutes or default_duration,
        calendars,
        events,
        horizon_days=horizon_days,
        now=now,
        snap_minutes=snap_minutes,
        work_hours=work_hours,
        include_read_only=include_read_only,
    )
    if slot is None:
        return None
    return create_event_from_task(task, target.id, slot.start, id_factory, default_duration)
