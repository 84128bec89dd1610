"""Series mutation - delete or modify one, this-and-future, or all occurrences.

Pure functions - no I/O. Inputs are never modified: every operation returns
whole replacement events for the caller to persist, plus the ids of events
that should be deleted. Callers must not run two mutations against the same
anchor concurrently.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from . import exception_store
from .calendar import Event, find_event, new_event_id, validate_event
from .errors import CandoError, NotFoundError, ValidationError
from .exception_store import OVERRIDE_FIELDS
from .recurrence import (
    build_occurrence,
    find_occurrence,
    is_occurrence_start,
    previous_occurrence_start,
    visible_occurrences,
)

logger = logging.getLogger(__name__)

SERIES_FIELDS = OVERRIDE_FIELDS + ("recurrence",)


class MutationAction(Enum):
    DELETE = "delete"
    MODIFY = "modify"


class MutationScope(Enum):
    THIS = "this"
    THIS_AND_FUTURE = "future"
    ALL = "all"


@dataclass
class SeriesChange:
    """Replacement events to save and ids to delete."""

    updated: list[Event] = field(default_factory=list)
    deleted_ids: list[str] = field(default_factory=list)


@dataclass
class MutationResult:
    """Outcome handed back to the UI layer."""

    success: bool
    updated_events: list[Event] = field(default_factory=list)
    deleted_event_ids: list[str] = field(default_factory=list)
    error: str | None = None


def _check_changes(changes: dict | None, allowed: tuple[str, ...]) -> dict:
    if not changes:
        raise ValidationError("No changes supplied")
    unknown = sorted(set(changes) - set(allowed))
    if unknown:
        raise ValidationError(f"Unsupported event fields: {', '.join(unknown)}")
    return changes


def normalize_series(anchor: Event) -> Event | None:
    """
    Keep an anchor honest about how many occurrences it has.

    No live occurrence left -> None (delete the anchor). Exactly one -> a
    standalone event with the same id and that occurrence's fields.
    """
    if not anchor.is_recurring:
        return anchor

    live = visible_occurrences(anchor, 2)
    if not live:
        return None
    if len(live) == 1:
        occ = live[0]
        logger.debug(f"Series {anchor.id} collapsed to a single event at {occ.start.isoformat()}")
        return replace(
            anchor,
            title=occ.title,
            description=occ.description,
            location=occ.location,
            calendar_id=occ.calendar_id,
            all_day=occ.all_day,
            start=occ.start,
            end=occ.end,
            recurrence=None,
            exceptions={},
        )
    return anchor


def _commit(change: SeriesChange, anchor: Event) -> SeriesChange:
    normalized = normalize_series(anchor)
    if normalized is None:
        change.deleted_ids.append(anchor.id)
    else:
        change.updated.append(normalized)
    return change


def _prune_off_grid(anchor: Event) -> Event:
    """Drop exception keys the anchor's rule no longer generates."""
    if not anchor.exceptions:
        return anchor
    kept = exception_store.prune_to(anchor.exceptions, lambda key: is_occurrence_start(anchor, key))
    dropped = len(anchor.exceptions) - len(kept)
    if dropped:
        logger.warning(f"Dropped {dropped} exception(s) of {anchor.id} that no longer match its cadence")
    return replace(anchor, exceptions=kept)


def shift_event(event: Event, delta: timedelta) -> Event:
    """Move an event (and, for a series, its exception keys and end) by delta."""
    if not delta:
        return event
    recurrence = event.recurrence
    if recurrence is not None and recurrence.until is not None:
        recurrence = replace(recurrence, until=recurrence.until + delta)
    return replace(
        event,
        start=event.start + delta,
        end=event.end + delta,
        recurrence=recurrence,
        exceptions=exception_store.shift_keys(event.exceptions, delta),
    )


def _group_children_shift(anchor: Event, delta: timedelta, all_events: list[Event]) -> list[Event]:
    if not anchor.is_group_event or not delta:
        return []
    children = [e for e in all_events if e.parent_group_event_id == anchor.id and e.id != anchor.id]
    if children:
        logger.info(f"Shifting {len(children)} group event(s) of {anchor.id} by {delta}")
    return [shift_event(e, delta) for e in children]


def propagate_group_shift(before: Event, after: Event, all_events: list[Event]) -> list[Event]:
    """
    Events linked to a group anchor, moved by the anchor's start delta.

    Returns an empty list when the anchor is not a group event or did not move.
    """
    return _group_children_shift(before, after.start - before.start, all_events)


def _truncate(anchor: Event, at: datetime) -> Event:
    """End the series with the occurrence before `at`, dropping later exceptions."""
    last_kept = previous_occurrence_start(anchor, at)
    kept, _ = exception_store.split_at(anchor.exceptions, at)
    return replace(anchor, recurrence=replace(anchor.recurrence, until=last_kept), exceptions=kept)


def _modify_standalone(event: Event, changes: dict, all_events: list[Event]) -> SeriesChange:
    updated = replace(event, **changes)
    if updated.is_recurring and not event.is_recurring:
        updated = replace(updated, exceptions={})
    validate_event(updated)
    return SeriesChange(updated=[updated, *_group_children_shift(event, updated.start - event.start, all_events)])


# ============== Delete ==============


def delete_this_occurrence(anchor: Event, occurrence_start: datetime) -> SeriesChange:
    """Skip one occurrence. Deleting the only live occurrence deletes the anchor."""
    find_occurrence(anchor, occurrence_start)
    if not anchor.is_recurring:
        return SeriesChange(deleted_ids=[anchor.id])

    updated = replace(anchor, exceptions=exception_store.skip(anchor.exceptions, occurrence_start))
    return _commit(SeriesChange(), updated)


def delete_this_and_future(anchor: Event, occurrence_start: datetime) -> SeriesChange:
    """End the series before this occurrence; from the first occurrence, delete it all."""
    find_occurrence(anchor, occurrence_start)
    if not anchor.is_recurring or occurrence_start == anchor.start:
        return SeriesChange(deleted_ids=[anchor.id])

    return _commit(SeriesChange(), _truncate(anchor, occurrence_start))


# ============== Modify ==============


def modify_this_occurrence(
    anchor: Event,
    occurrence_start: datetime,
    changes: dict,
    all_events: list[Event] | None = None,
) -> SeriesChange:
    """Override fields of one occurrence. The anchor's own fields are untouched."""
    _check_changes(changes, OVERRIDE_FIELDS)
    all_events = all_events or []
    before = find_occurrence(anchor, occurrence_start)
    if not anchor.is_recurring:
        return _modify_standalone(anchor, changes, all_events)

    exceptions = exception_store.override(anchor.exceptions, occurrence_start, changes)
    after = build_occurrence(anchor, occurrence_start, exceptions[occurrence_start])
    if after.end <= after.start:
        raise ValidationError(
            f"Occurrence must end after it starts ({after.start.isoformat()} -> {after.end.isoformat()})"
        )

    updated = replace(anchor, exceptions=exceptions)
    return SeriesChange(updated=[updated, *_group_children_shift(anchor, after.start - before.start, all_events)])


def _replaced_fields(changes: dict) -> set[str]:
    """Override fields made obsolete by a change; a new time replaces both ends."""
    replaced = set(changes)
    if replaced & {"start", "end"}:
        replaced |= {"start", "end"}
    return replaced


def modify_this_and_future(
    anchor: Event,
    occurrence_start: datetime,
    changes: dict,
    all_events: list[Event] | None = None,
    id_factory: Callable[[], str] = new_event_id,
) -> SeriesChange:
    """
    Split the series at this occurrence and apply changes to the new tail.

    The original anchor keeps occurrences before the split and gets a detach
    marker at it. A new anchor (fresh id) starts at the occurrence's original
    start with the series fields and the changes merged on top, keeps the
    original cadence and end, and takes over the later exceptions. Whatever
    part of an existing override the changes do not replace stays on the
    split occurrence only.
    """
    _check_changes(changes, OVERRIDE_FIELDS)
    all_events = all_events or []
    occ = find_occurrence(anchor, occurrence_start)

    if not anchor.is_recurring:
        return _modify_standalone(anchor, changes, all_events)

    fields = {k: v for k, v in changes.items() if k not in ("start", "end")}
    new_start = changes.get("start", occurrence_start)
    new_end = changes.get("end", new_start + anchor.duration())
    delta = new_start - occurrence_start

    if occurrence_start == anchor.start:
        # Nothing before the split: rewrite the series in place
        exceptions = exception_store.drop_fields(anchor.exceptions, occurrence_start, _replaced_fields(changes))
        moved = shift_event(replace(anchor, exceptions=exceptions), delta)
        tail_anchor = _prune_off_grid(replace(moved, end=new_end, **fields))
        validate_event(tail_anchor)
        change = _commit(SeriesChange(), tail_anchor)
    else:
        head = _truncate(anchor, occurrence_start)
        head = replace(head, exceptions=exception_store.detach(head.exceptions, occurrence_start))

        _, tail = exception_store.split_at(anchor.exceptions, occurrence_start)
        tail = exception_store.drop_fields(tail, occurrence_start, _replaced_fields(changes))

        rule = anchor.recurrence
        if rule.until is not None:
            rule = replace(rule, until=rule.until + delta)

        tail_anchor = replace(
            anchor,
            id=id_factory(),
            start=new_start,
            end=new_end,
            recurrence=rule,
            exceptions=exception_store.shift_keys(tail, delta),
            **fields,
        )
        validate_event(tail_anchor)
        tail_anchor = _prune_off_grid(tail_anchor)
        logger.info(f"Split series {anchor.id} at {occurrence_start.isoformat()} into {tail_anchor.id}")

        change = _commit(SeriesChange(), head)
        change = _commit(change, tail_anchor)

    after = build_occurrence(tail_anchor, new_start, exception_store.lookup(tail_anchor.exceptions, new_start))
    change.updated.extend(_group_children_shift(anchor, after.start - occ.start, all_events))
    return change


def modify_all_in_series(
    anchor: Event,
    changes: dict,
    all_events: list[Event] | None = None,
) -> SeriesChange:
    """
    Overwrite the anchor's shared fields.

    A time change keeps the anchor's date and takes the new time of day and
    duration; exception keys move with the anchor. Per-occurrence overrides
    still win for their own dates.
    """
    _check_changes(changes, SERIES_FIELDS)
    all_events = all_events or []
    if not anchor.is_recurring:
        return _modify_standalone(anchor, changes, all_events)

    fields = {k: v for k, v in changes.items() if k not in ("start", "end", "recurrence")}
    new_start, new_end = anchor.start, anchor.end
    if "start" in changes:
        new_start = datetime.combine(anchor.start.date(), changes["start"].time())
        duration = changes["end"] - changes["start"] if "end" in changes else anchor.duration()
        new_end = new_start + duration
    elif "end" in changes:
        new_end = datetime.combine(anchor.end.date(), changes["end"].time())

    updated = shift_event(anchor, new_start - anchor.start)
    updated = replace(updated, end=new_end, **fields)

    if "recurrence" in changes:
        rule = changes["recurrence"]
        if rule is not None:
            rule.validate(updated.start)
        if rule is None or not rule.is_recurring:
            updated = replace(updated, recurrence=None, exceptions={})
        elif not rule.same_cadence(anchor.recurrence):
            updated = _prune_off_grid(replace(updated, recurrence=rule))
        else:
            updated = replace(updated, recurrence=rule)
    validate_event(updated)

    change = _commit(SeriesChange(), updated)
    change.updated.extend(_group_children_shift(anchor, new_start - anchor.start, all_events))
    return change


# ============== Facade ==============


def run_mutation(
    action: MutationAction | str,
    scope: MutationScope | str,
    series_id: str,
    occurrence_start: datetime,
    all_events: list[Event],
    changes: dict | None = None,
    id_factory: Callable[[], str] = new_event_id,
) -> MutationResult:
    """
    Apply one mutation and report success or failure.

    Engine errors become `success=False` with the message; since inputs are
    never modified there is nothing to roll back.
    """
    try:
        action = MutationAction(action)
        scope = MutationScope(scope)
    except ValueError as e:
        return MutationResult(success=False, error=str(e))

    try:
        anchor = find_event(all_events, series_id)
        if anchor is None:
            raise NotFoundError(f"Event {series_id!r} not found")

        if action is MutationAction.DELETE:
            if scope is MutationScope.THIS:
                change = delete_this_occurrence(anchor, occurrence_start)
            elif scope is MutationScope.THIS_AND_FUTURE:
                change = delete_this_and_future(anchor, occurrence_start)
            else:
                find_occurrence(anchor, occurrence_start)
                change = SeriesChange(deleted_ids=[anchor.id])
        elif scope is MutationScope.THIS:
            change = modify_this_occurrence(anchor, occurrence_start, changes, all_events)
        elif scope is MutationScope.THIS_AND_FUTURE:
            change = modify_this_and_future(anchor, occurrence_start, changes, all_events, id_factory)
        else:
            find_occurrence(anchor, occurrence_start)
            change = modify_all_in_series(anchor, changes, all_events)
    except CandoError as e:
        logger.error(f"Failed to {action.value} ({scope.value}) {series_id}: {e}")
        return MutationResult(success=False, error=str(e))

    return MutationResult(success=True, updated_events=change.updated, deleted_event_ids=change.deleted_ids)
