"""Recurrence expansion - turns anchor events into concrete occurrences.

Pure functions - no I/O. Every generator here is a function of its
arguments only, so calling it again with the same inputs restarts it.
"""

import heapq
import logging
from dataclasses import dataclass
from datetime import datetime
from itertools import islice
from typing import Iterator

from dateutil.rrule import DAILY, MO, MONTHLY, WEEKLY, YEARLY, rrule, rruleset

from . import exception_store
from .calendar import Calendar, Event, Frequency, visible_calendar_ids
from .errors import NotFoundError
from .exception_store import ExceptionEntry, ExceptionKind, ExceptionMap

logger = logging.getLogger(__name__)

_RRULE_FREQUENCIES = {
    Frequency.DAILY: DAILY,
    Frequency.WEEKLY: WEEKLY,
    Frequency.MONTHLY: MONTHLY,
    Frequency.YEARLY: YEARLY,
}


@dataclass
class Occurrence:
    """One concrete instance of an event. Derived, never persisted."""

    series_id: str
    original_start: datetime
    start: datetime
    end: datetime
    title: str
    description: str
    location: str
    calendar_id: str
    all_day: bool
    is_exception: bool = False
    is_cancelled: bool = False

    @property
    def key(self) -> tuple[str, datetime]:
        return (self.series_id, self.original_start)

    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() / 60)

    def format_time(self) -> str:
        if self.all_day:
            return "All day"
        return self.start.strftime("%H:%M")

    def to_dict(self) -> dict:
        return {
            "series_id": self.series_id,
            "original_start": self.original_start.isoformat(),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "calendar_id": self.calendar_id,
            "all_day": self.all_day,
            "is_exception": self.is_exception,
            "is_cancelled": self.is_cancelled,
        }


def build_ruleset(anchor: Event) -> rruleset:
    """
    dateutil rule set generating a recurring anchor's instants.

    Weeks start on Monday. The anchor start is added as an explicit date, so
    it is always occurrence 0 even when its weekday is not listed. Monthly
    and yearly rules skip months that lack the anchor's day.
    """
    rule = anchor.recurrence
    byweekday = None
    if rule.frequency is Frequency.WEEKLY and rule.days_of_week:
        byweekday = sorted(rule.days_of_week)

    rules = rruleset()
    rules.rrule(
        rrule(
            _RRULE_FREQUENCIES[rule.frequency],
            dtstart=anchor.start,
            interval=rule.interval,
            until=rule.until,
            byweekday=byweekday,
            wkst=MO,
        )
    )
    rules.rdate(anchor.start)
    return rules


def iter_occurrence_starts(anchor: Event, not_before: datetime | None = None) -> Iterator[datetime]:
    """
    Instants generated by the anchor's rule, ascending, before exceptions.

    Unbounded when the rule has no `until`. With `not_before`, iteration
    starts at the first instant at or after it.
    """
    if not anchor.is_recurring:
        yield anchor.start
        return

    rules = build_ruleset(anchor)
    if not_before is None or not_before <= anchor.start:
        yield from rules
    else:
        yield from rules.xafter(not_before, inc=True)


def is_occurrence_start(anchor: Event, instant: datetime) -> bool:
    """True if the rule generates exactly this instant."""
    if not anchor.is_recurring:
        return instant == anchor.start
    if instant < anchor.start:
        return False
    return instant in build_ruleset(anchor)


def previous_occurrence_start(anchor: Event, instant: datetime) -> datetime | None:
    """Latest generated instant strictly before `instant`, or None."""
    if not anchor.is_recurring:
        return anchor.start if anchor.start < instant else None
    return build_ruleset(anchor).before(instant)


def build_occurrence(
    anchor: Event,
    original_start: datetime,
    entry: ExceptionEntry | None = None,
) -> Occurrence:
    """Merge an exception entry (if any) over the anchor's fields."""
    changes = entry.changes if entry is not None and entry.kind is ExceptionKind.OVERRIDE else {}
    start = changes.get("start", original_start)
    end = changes.get("end", start + anchor.duration())
    return Occurrence(
        series_id=anchor.id,
        original_start=original_start,
        start=start,
        end=end,
        title=changes.get("title", anchor.title),
        description=changes.get("description", anchor.description),
        location=changes.get("location", anchor.location),
        calendar_id=changes.get("calendar_id", anchor.calendar_id),
        all_day=changes.get("all_day", anchor.all_day),
        is_exception=bool(changes),
        is_cancelled=entry is not None and entry.is_skip,
    )


def _overlaps(occ: Occurrence, range_start: datetime, range_end: datetime) -> bool:
    return occ.start <= range_end and occ.end > range_start


def expand(
    anchor: Event,
    range_start: datetime,
    range_end: datetime,
    exceptions: ExceptionMap | None = None,
    include_cancelled: bool = False,
) -> Iterator[Occurrence]:
    """
    Lazily expand an anchor into occurrences overlapping [range_start, range_end].

    Occurrences come out in original-start order. `exceptions` defaults to
    the anchor's own map: skips suppress an occurrence (or mark it cancelled
    when `include_cancelled`), overrides merge their fields, and a detach
    marker ends the series at that instant.
    """
    if exceptions is None:
        exceptions = anchor.exceptions

    if not anchor.is_recurring:
        occ = build_occurrence(anchor, anchor.start)
        if _overlaps(occ, range_start, range_end):
            yield occ
        return

    cut = exception_store.first_detach(exceptions)
    scan_from = range_start - anchor.duration()

    def scanned() -> Iterator[Occurrence]:
        for original in iter_occurrence_starts(anchor, not_before=scan_from):
            if cut is not None and original >= cut:
                return
            if original > range_end:
                return
            if original < scan_from:
                continue
            entry = exception_store.lookup(exceptions, original)
            if entry is not None and entry.is_skip and not include_cancelled:
                continue
            occ = build_occurrence(anchor, original, entry)
            if _overlaps(occ, range_start, range_end):
                yield occ

    # Overrides can move an occurrence into the range from outside the scan window
    moved_in = []
    for original, entry in sorted((exceptions or {}).items(), key=lambda kv: kv[0]):
        if entry.kind is not ExceptionKind.OVERRIDE:
            continue
        if scan_from <= original <= range_end:
            continue
        if cut is not None and original >= cut:
            continue
        occ = build_occurrence(anchor, original, entry)
        if _overlaps(occ, range_start, range_end) and is_occurrence_start(anchor, original):
            moved_in.append(occ)

    if moved_in:
        yield from heapq.merge(scanned(), moved_in, key=lambda o: o.original_start)
    else:
        yield from scanned()


def visible_occurrences(anchor: Event, limit: int) -> list[Occurrence]:
    """First `limit` live occurrences of an anchor, from its very start."""
    earliest = anchor.start
    for entry in anchor.exceptions.values():
        moved = entry.changes.get("start") if entry.kind is ExceptionKind.OVERRIDE else None
        if moved is not None and moved < earliest:
            earliest = moved
    return list(islice(expand(anchor, earliest, datetime.max), limit))


def find_occurrence(anchor: Event, original_start: datetime) -> Occurrence:
    """
    The live occurrence identified by (anchor, original_start).

    Raises NotFoundError if the rule never generates that instant, if it was
    deleted, or if it now belongs to another anchor after a split.
    """
    if not anchor.is_recurring:
        if original_start != anchor.start:
            raise NotFoundError(f"Event {anchor.id!r} has no occurrence at {original_start.isoformat()}")
        return build_occurrence(anchor, anchor.start)

    if not is_occurrence_start(anchor, original_start):
        raise NotFoundError(f"Series {anchor.id!r} has no occurrence at {original_start.isoformat()}")

    cut = exception_store.first_detach(anchor.exceptions)
    if cut is not None and original_start >= cut:
        raise NotFoundError(
            f"Occurrence {original_start.isoformat()} of {anchor.id!r} was split into another series"
        )

    entry = exception_store.lookup(anchor.exceptions, original_start)
    if entry is not None and entry.is_skip:
        raise NotFoundError(f"Occurrence {original_start.isoformat()} of {anchor.id!r} was already deleted")
    return build_occurrence(anchor, original_start, entry)


def expand_all(
    events: list[Event],
    range_start: datetime,
    range_end: datetime,
    calendars: list[Calendar] | None = None,
    include_read_only: bool = True,
) -> list[Occurrence]:
    """
    Expand many anchors over one range, sorted by start.

    When calendars are given, events on hidden calendars are left out.
    """
    if calendars is not None:
        allowed = visible_calendar_ids(calendars, include_read_only)
        events = [e for e in events if e.calendar_id in allowed]

    occurrences: list[Occurrence] = []
    for event in events:
        occurrences.extend(expand(event, range_start, range_end))
    logger.debug(f"Expanded {len(events)} events into {len(occurrences)} occurrences")
    return sorted(occurrences, key=lambda o: (o.start, o.series_id))
