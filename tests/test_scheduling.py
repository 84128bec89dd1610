"""Tests for free-slot search and task scheduling."""

from datetime import date, datetime, timedelta

import pytest

from cando.core.calendar import Calendar, Event, Frequency, RecurrenceRule, TimeSlot
from cando.core.errors import NotFoundError, ValidationError
from cando.core.scheduling import (
    available_slots_for_day,
    create_event_from_task,
    find_free_slots,
    find_next_free_slot,
    merge_intervals,
    pick_target_calendar,
    schedule_task,
    snap_to_next_tick,
)
from cando.core.tasks import Task


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 9, 7)


@pytest.fixture
def calendars():
    return [
        Calendar("work", name="Work", is_default=True),
        Calendar("private", name="Private", visible=False),
        Calendar("holidays", name="Holidays", read_only=True),
    ]


def event(start, end, calendar_id="work", **kwargs):
    return Event(
        id=kwargs.pop("id", f"e-{start.isoformat()}"),
        title=kwargs.pop("title", "Busy"),
        start=start,
        end=end,
        calendar_id=calendar_id,
        **kwargs,
    )


def at(hour, minute=0, day=15):
    return datetime(2025, 1, day, hour, minute)


class TestSnapToNextTick:
    def test_rounds_up(self):
        assert snap_to_next_tick(at(9, 7)) == at(9, 15)

    def test_on_tick_unchanged(self):
        assert snap_to_next_tick(at(9, 15)) == at(9, 15)

    def test_crosses_midnight(self):
        assert snap_to_next_tick(at(23, 50)) == at(0, 0, day=16)

    def test_other_tick_size(self):
        assert snap_to_next_tick(at(9, 7), minutes=30) == at(9, 30)


class TestMergeIntervals:
    def test_merges_overlapping_and_touching(self):
        merged = merge_intervals([
            TimeSlot(at(11), at(12)),
            TimeSlot(at(9), at(10)),
            TimeSlot(at(9, 30), at(10, 30)),
            TimeSlot(at(10, 30), at(10, 45)),
        ])
        assert merged == [TimeSlot(at(9), at(10, 45)), TimeSlot(at(11), at(12))]

    def test_contained_interval(self):
        assert merge_intervals([TimeSlot(at(9), at(12)), TimeSlot(at(10), at(11))]) == [TimeSlot(at(9), at(12))]


class TestFindFreeSlots:
    def test_gaps_between_busy(self):
        busy = [TimeSlot(at(9), at(10)), TimeSlot(at(11), at(12))]
        slots = find_free_slots(busy, at(8), at(13), min_duration=30)
        assert slots == [TimeSlot(at(8), at(9)), TimeSlot(at(10), at(11)), TimeSlot(at(12), at(13))]

    def test_skips_short_gaps(self):
        busy = [TimeSlot(at(9), at(10)), TimeSlot(at(10, 15), at(11))]
        slots = find_free_slots(busy, at(9), at(12), min_duration=30)
        assert slots == [TimeSlot(at(11), at(12))]

    def test_gap_start_snapped(self):
        busy = [TimeSlot(at(9), at(10, 7))]
        slots = find_free_slots(busy, at(9), at(11), min_duration=30)
        assert slots == [TimeSlot(at(10, 15), at(11))]


class TestFindNextFreeSlot:
    def test_empty_calendar_snaps_now(self, calendars, now):
        slot = find_next_free_slot(30, calendars, [], now=now)
        assert slot == TimeSlot(at(9, 15), at(9, 45))

    def test_after_busy_block(self, calendars, now):
        slot = find_next_free_slot(30, calendars, [event(at(9), at(10))], now=now)
        assert slot == TimeSlot(at(10), at(10, 30))

    def test_busy_end_snapped(self, calendars, now):
        slot = find_next_free_slot(30, calendars, [event(at(9), at(10, 7))], now=now)
        assert slot.start == at(10, 15)

    def test_gap_too_small(self, calendars, now):
        events = [event(at(9), at(10)), event(at(10, 15), at(11))]
        slot = find_next_free_slot(30, calendars, events, now=now)
        assert slot.start == at(11)

    def test_slot_never_overlaps_busy(self, calendars, now):
        events = [event(at(9), at(10)), event(at(10, 30), at(12)), event(at(12, 15), at(14))]
        slot = find_next_free_slot(45, calendars, events, now=now)
        assert all(not slot.overlaps(TimeSlot(e.start, e.end)) for e in events)
        assert slot.start == at(14)

    def test_hidden_calendar_ignored(self, calendars, now):
        slot = find_next_free_slot(30, calendars, [event(at(9), at(12), "private")], now=now)
        assert slot.start == at(9, 15)

    def test_read_only_ignored_by_default(self, calendars, now):
        events = [event(at(9), at(12), "holidays")]
        assert find_next_free_slot(30, calendars, events, now=now).start == at(9, 15)
        assert find_next_free_slot(30, calendars, events, now=now, include_read_only=True).start == at(12)

    def test_all_day_event_does_not_block(self, calendars, now):
        all_day = event(at(0), at(0, day=16), all_day=True)
        assert find_next_free_slot(30, calendars, [all_day], now=now).start == at(9, 15)

    def test_recurring_event_blocks(self, calendars, now):
        daily = event(at(9, day=1), at(12, day=1), recurrence=RecurrenceRule(Frequency.DAILY))
        assert find_next_free_slot(30, calendars, [daily], now=now).start == at(12)

    def test_none_when_horizon_full(self, calendars, now):
        busy = event(at(0), at(0, day=23))
        assert find_next_free_slot(30, calendars, [busy], now=now) is None

    def test_slot_must_end_in_horizon(self, calendars, now):
        busy = event(at(9), at(8, 45, day=16))
        assert find_next_free_slot(30, calendars, [busy], horizon_days=1, now=now) is None

    def test_work_hours(self, calendars):
        slot = find_next_free_slot(30, calendars, [], now=at(17, 30), work_hours=(9, 17))
        assert slot == TimeSlot(at(9, day=16), at(9, 30, day=16))

    def test_non_positive_duration(self, calendars, now):
        with pytest.raises(ValidationError):
            find_next_free_slot(0, calendars, [], now=now)

    def test_deterministic(self, calendars, now):
        events = [event(at(9), at(10)), event(at(11), at(12))]
        assert find_next_free_slot(60, calendars, events, now=now) == find_next_free_slot(
            60, calendars, events, now=now
        )


class TestAvailableSlotsForDay:
    def test_one_slot_per_gap(self, calendars, now):
        slots = available_slots_for_day(date(2025, 1, 15), 30, calendars, [event(at(10), at(11))], now=now)
        assert slots[0] == TimeSlot(at(9, 15), at(9, 45))
        assert slots[1] == TimeSlot(at(11), at(11, 30))

    def test_past_day(self, calendars, now):
        assert available_slots_for_day(date(2025, 1, 14), 30, calendars, [], now=now) == []

    def test_future_day_starts_at_midnight(self, calendars, now):
        slots = available_slots_for_day(date(2025, 1, 16), 30, calendars, [], now=now)
        assert slots == [TimeSlot(at(0, day=16), at(0, 30, day=16))]


class TestPickTargetCalendar:
    def test_default_calendar(self, calendars):
        assert pick_target_calendar(calendars).id == "work"

    def test_first_visible_writable(self):
        calendars = [Calendar("a", visible=False), Calendar("b"), Calendar("c")]
        assert pick_target_calendar(calendars).id == "b"

    def test_explicit(self, calendars):
        assert pick_target_calendar(calendars, "private").id == "private"

    def test_explicit_read_only(self, calendars):
        with pytest.raises(ValidationError):
            pick_target_calendar(calendars, "holidays")

    def test_explicit_missing(self, calendars):
        with pytest.raises(NotFoundError):
            pick_target_calendar(calendars, "nope")

    def test_nothing_writable(self):
        assert pick_target_calendar([Calendar("holidays", read_only=True)]) is None


class TestScheduleTask:
    def test_create_event_from_task(self, now):
        task = Task(id="t1", content="Write report", duration_minutes=45)
        created = create_event_from_task(task, "work", at(10), id_factory=lambda: "ev1")
        assert created.id == "ev1"
        assert created.title == "Write report"
        assert created.end == at(10, 45)
        assert created.task_id == "t1"
        assert created.description == "Created from task: Write report"
        assert not created.is_recurring

    def test_default_duration(self):
        task = Task(id="t1", content="Call mom")
        created = create_event_from_task(task, "work", at(10), id_factory=lambda: "ev1")
        assert created.end - created.start == timedelta(minutes=60)

    def test_schedules_into_next_slot(self, calendars, now):
        task = Task(id="t1", content="Write report", duration_minutes=30)
        created = schedule_task(task, calendars, [event(at(9), at(10))], now=now, id_factory=lambda: "ev1")
        assert created.start == at(10)
        assert created.calendar_id == "work"

    def test_no_slot(self, calendars, now):
        task = Task(id="t1", content="Write report", duration_minutes=30)
        assert schedule_task(task, calendars, [event(at(0), at(0, day=23))], now=now) is None

    def test_no_writable_calendar(self, now):
        task = Task(id="t1", content="Write report")
        assert schedule_task(task, [Calendar("holidays", read_only=True)], [], now=now) is None
