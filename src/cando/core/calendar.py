"""Pure calendar domain objects - no I/O dependencies."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from . import exception_store
from .errors import InvalidRuleError, ValidationError
from .exception_store import ExceptionMap


class Frequency(Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class RecurrenceRule:
    """
    How an anchor event repeats.

    `until` is an inclusive bound on occurrence starts. `days_of_week` only
    applies to weekly rules and uses Monday=0 .. Sunday=6.
    """

    frequency: Frequency
    interval: int = 1
    until: datetime | None = None
    days_of_week: frozenset[int] | None = None

    @property
    def is_recurring(self) -> bool:
        return self.frequency is not Frequency.NONE

    def same_cadence(self, other: "RecurrenceRule | None") -> bool:
        """True if other generates instants on the same grid (ignoring until)."""
        if other is None:
            return False
        return (
            self.frequency is other.frequency
            and self.interval == other.interval
            and (self.days_of_week or None) == (other.days_of_week or None)
        )

    def validate(self, start: datetime) -> None:
        """Raise InvalidRuleError if the rule cannot be expanded from start."""
        if not isinstance(self.interval, int) or self.interval < 1:
            raise InvalidRuleError(f"Recurrence interval must be a positive integer, got {self.interval!r}")
        if self.until is not None and self.until < start:
            raise InvalidRuleError(
                f"Recurrence end {self.until.isoformat()} is before the event start {start.isoformat()}"
            )
        if self.days_of_week:
            bad = sorted(d for d in self.days_of_week if not 0 <= d <= 6)
            if bad:
                raise InvalidRuleError(f"Invalid weekday numbers: {bad}")

    def to_dict(self) -> dict:
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "until": self.until.isoformat() if self.until else None,
            "days_of_week": sorted(self.days_of_week) if self.days_of_week else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecurrenceRule":
        try:
            frequency = Frequency(data.get("frequency", "none"))
        except ValueError as e:
            raise InvalidRuleError(f"Unknown recurrence frequency: {data.get('frequency')!r}") from e
        until = data.get("until")
        days = data.get("days_of_week")
        return cls(
            frequency=frequency,
            interval=data.get("interval", 1),
            until=datetime.fromisoformat(until) if until else None,
            days_of_week=frozenset(days) if days else None,
        )


@dataclass
class Event:
    """A calendar event - either standalone or the anchor of a series."""

    id: str
    title: str
    start: datetime
    end: datetime
    calendar_id: str
    description: str = ""
    location: str = ""
    all_day: bool = False
    recurrence: RecurrenceRule | None = None
    exceptions: ExceptionMap = field(default_factory=dict)
    is_group_event: bool = False
    parent_group_event_id: str | None = None
    task_id: str | None = None

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None and self.recurrence.is_recurring

    def duration(self) -> timedelta:
        return self.end - self.start

    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() / 60)

    def format_time(self) -> str:
        """Format the event time for display."""
        if self.all_day:
            return "All day"
        return self.start.strftime("%H:%M")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "calendar_id": self.calendar_id,
            "description": self.description,
            "location": self.location,
            "all_day": self.all_day,
            "recurrence": self.recurrence.to_dict() if self.recurrence else None,
            "exceptions": exception_store.to_dict(self.exceptions),
            "is_group_event": self.is_group_event,
            "parent_group_event_id": self.parent_group_event_id,
            "task_id": self.task_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Event":
        recurrence = data.get("recurrence")
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
            calendar_id=data.get("calendar_id", ""),
            description=data.get("description") or "",
            location=data.get("location") or "",
            all_day=bool(data.get("all_day", False)),
            recurrence=RecurrenceRule.from_dict(recurrence) if recurrence else None,
            exceptions=exception_store.from_dict(data.get("exceptions")),
            is_group_event=bool(data.get("is_group_event", False)),
            parent_group_event_id=data.get("parent_group_event_id"),
            task_id=data.get("task_id"),
        )


def validate_event(event: Event) -> None:
    """Raise ValidationError / InvalidRuleError for a malformed event."""
    if event.end <= event.start:
        raise ValidationError(
            f"Event {event.id!r} must end after it starts "
            f"({event.start.isoformat()} -> {event.end.isoformat()})"
        )
    if event.recurrence is not None:
        event.recurrence.validate(event.start)


@dataclass
class Calendar:
    """A calendar that events belong to."""

    id: str
    name: str = ""
    visible: bool = True
    is_default: bool = False
    read_only: bool = False
    color: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "visible": self.visible,
            "is_default": self.is_default,
            "read_only": self.read_only,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Calendar":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            visible=bool(data.get("visible", True)),
            is_default=bool(data.get("is_default", False)),
            read_only=bool(data.get("read_only", False)),
            color=data.get("color", ""),
        )


@dataclass
class TimeSlot:
    """A span of wall-clock time."""

    start: datetime
    end: datetime

    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() / 60)

    def format(self) -> str:
        return f"{self.start.strftime('%a %H:%M')}-{self.end.strftime('%H:%M')} ({self.duration_minutes()} min)"

    def contains(self, dt: datetime) -> bool:
        """Check if a datetime falls within this slot."""
        return self.start <= dt < self.end

    def overlaps(self, other: "TimeSlot") -> bool:
        """Check if this slot overlaps with another."""
        return self.start < other.end and other.start < self.end

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def visible_calendar_ids(calendars: list[Calendar], include_read_only: bool = True) -> set[str]:
    """Ids of calendars whose events should be shown (or counted as busy)."""
    return {c.id for c in calendars if c.visible and (include_read_only or not c.read_only)}


def find_event(events: list[Event], event_id: str) -> Event | None:
    return next((e for e in events if e.id == event_id), None)


def new_event_id() -> str:
    return uuid.uuid4().hex
