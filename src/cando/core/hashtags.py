"""Hashtag parsing for quick task entry - pure functions, no I/O.

"Write report #d1h30m #duetomorrow #i8u5" becomes a task titled
"Write report" lasting 90 minutes, due tomorrow, impact 8, urgency 5.
"""

import re
from dataclasses import dataclass
from datetime import date, timedelta

from .priority import parse_priority_from_content

_DURATION = re.compile(r"#d(\d+h\d+m?|\d+h|\d+m?)\b", re.IGNORECASE)
_DUE_ISO = re.compile(r"#due(\d{4}-\d{2}-\d{2})\b", re.IGNORECASE)
_DUE_DAYS = re.compile(r"#due(\d+)d\b", re.IGNORECASE)
_DUE_WEEKDAY = re.compile(
    r"#due(?:next)?(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b", re.IGNORECASE
)
_DUE_TODAY = re.compile(r"#duetoday\b", re.IGNORECASE)
_DUE_TOMORROW = re.compile(r"#duetomorrow\b", re.IGNORECASE)
_DUE_WEEK = re.compile(r"#dueweek\b", re.IGNORECASE)

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _squash(text: str) -> str:
    return " ".join(text.split())


def parse_time_string(value: str) -> int | None:
    """Minutes in "15", "15m", "1h", "1h15" or "1h15m"; None if unparseable."""
    match = re.fullmatch(r"(\d+)m?", value, re.IGNORECASE)
    if match:
        return int(match.group(1))
    match = re.fullmatch(r"(\d+)h(?:(\d+)m?)?", value, re.IGNORECASE)
    if match:
        return int(match.group(1)) * 60 + int(match.group(2) or 0)
    return None


def parse_duration_from_content(content: str) -> tuple[str, int | None]:
    """Strip duration tags; the first one wins. Returns (content, minutes)."""
    duration = None
    cleaned = content
    for match in _DURATION.finditer(content):
        minutes = parse_time_string(match.group(1))
        if minutes is None:
            continue
        if duration is None:
            duration = minutes
        cleaned = cleaned.replace(match.group(0), " ", 1)
    return _squash(cleaned), duration


def parse_due_date_from_content(content: str, today: date | None = None) -> tuple[str, date | None]:
    """
    Strip the first recognised due-date tag. Returns (content, due date).

    Tried in order: #due2024-12-25, #due4d, #duemonday / #duenextmonday
    (always a future day, never today), #duetoday, #duetomorrow, #dueweek.
    """
    today = today or date.today()

    match = _DUE_ISO.search(content)
    if match:
        try:
            due = date.fromisoformat(match.group(1))
        except ValueError:
            due = None
        if due is not None:
            return _squash(content.replace(match.group(0), " ", 1)), due

    match = _DUE_DAYS.search(content)
    if match:
        return _squash(content.replace(match.group(0), " ", 1)), today + timedelta(days=int(match.group(1)))

    match = _DUE_WEEKDAY.search(content)
    if match:
        target = WEEKDAYS.index(match.group(1).lower())
        days_until = (target - today.weekday()) % 7 or 7
        return _squash(content.replace(match.group(0), " ", 1)), today + timedelta(days=days_until)

    for pattern, offset in ((_DUE_TODAY, 0), (_DUE_TOMORROW, 1), (_DUE_WEEK, 7)):
        if pattern.search(content):
            return _squash(pattern.sub(" ", content)), today + timedelta(days=offset)

    return content, None


def format_due_date(due: date, today: date | None = None) -> str:
    """Relative wording for dates within a week, ISO date otherwise."""
    today = today or date.today()
    days = (due - today).days
    if days == 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    if days == -1:
        return "Yesterday"
    if 0 < days <= 7:
        return f"In {days} days"
    if -7 <= days < 0:
        return f"{-days} days ago"
    return due.isoformat()


@dataclass
class ParsedTask:
    content: str
    duration_minutes: int | None = None
    due_date: date | None = None
    impact: int | None = None
    urgency: int | None = None


def parse_task_content(content: str, today: date | None = None) -> ParsedTask:
    """Apply every tag parser to a line of quick-entry text."""
    text, duration = parse_duration_from_content(content)
    text, due = parse_due_date_from_content(text, today)
    priority = parse_priority_from_content(text)
    return ParsedTask(
        content=priority.content,
        duration_minutes=duration,
        due_date=due,
        impact=priority.impact,
        urgency=priority.urgency,
    )
