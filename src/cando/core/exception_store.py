"""Per-series exception maps - pure functions, no I/O.

An exception map is keyed by the *original* start of the occurrence it
applies to, i.e. the instant the rule generated before any override moved
it. Every function returns a new map; the input is never modified.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from .errors import ValidationError

# Fields an occurrence override (or a series edit) may change.
OVERRIDE_FIELDS = ("title", "description", "location", "calendar_id", "all_day", "start", "end")
_DATETIME_FIELDS = ("start", "end")


class ExceptionKind(Enum):
    SKIP = "skip"
    OVERRIDE = "override"
    DETACH = "detach"


@dataclass(frozen=True)
class ExceptionEntry:
    """One per-occurrence exception."""

    kind: ExceptionKind
    changes: dict = field(default_factory=dict)

    @property
    def is_skip(self) -> bool:
        return self.kind is ExceptionKind.SKIP

    @property
    def is_detach(self) -> bool:
        return self.kind is ExceptionKind.DETACH

    def to_dict(self) -> dict:
        data: dict = {"kind": self.kind.value}
        if self.changes:
            data["changes"] = {
                k: (v.isoformat() if k in _DATETIME_FIELDS else v) for k, v in self.changes.items()
            }
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ExceptionEntry":
        changes = {}
        for k, v in (data.get("changes") or {}).items():
            changes[k] = datetime.fromisoformat(v) if k in _DATETIME_FIELDS else v
        return cls(kind=ExceptionKind(data["kind"]), changes=changes)


ExceptionMap = dict[datetime, ExceptionEntry]


def check_changes(changes: dict) -> None:
    """Reject change bags naming fields that cannot be overridden."""
    unknown = sorted(set(changes) - set(OVERRIDE_FIELDS))
    if unknown:
        raise ValidationError(f"Unsupported event fields: {', '.join(unknown)}")


def lookup(exceptions: ExceptionMap | None, original_start: datetime) -> ExceptionEntry | None:
    if not exceptions:
        return None
    return exceptions.get(original_start)


def skip(exceptions: ExceptionMap | None, original_start: datetime) -> ExceptionMap:
    """Mark one occurrence as deleted. Replaces any override for it."""
    result = dict(exceptions or {})
    result[original_start] = ExceptionEntry(ExceptionKind.SKIP)
    return result


def override(exceptions: ExceptionMap | None, original_start: datetime, changes: dict) -> ExceptionMap:
    """
    Insert or update a field override for one occurrence.

    Changes are merged over an existing override for the same occurrence;
    an existing skip is replaced.
    """
    check_changes(changes)
    result = dict(exceptions or {})
    existing = result.get(original_start)
    merged = dict(existing.changes) if existing and existing.kind is ExceptionKind.OVERRIDE else {}
    merged.update(changes)
    result[original_start] = ExceptionEntry(ExceptionKind.OVERRIDE, merged)
    return result


def drop_fields(exceptions: ExceptionMap | None, original_start: datetime, fields: set[str]) -> ExceptionMap:
    """
    Remove some fields from the override of one occurrence.

    An override left with no fields is removed. Skips and detach markers are
    kept as they are.
    """
    result = dict(exceptions or {})
    entry = result.get(original_start)
    if entry is None or entry.kind is not ExceptionKind.OVERRIDE:
        return result
    remaining = {k: v for k, v in entry.changes.items() if k not in fields}
    if remaining:
        result[original_start] = ExceptionEntry(ExceptionKind.OVERRIDE, remaining)
    else:
        del result[original_start]
    return result


def detach(exceptions: ExceptionMap | None, original_start: datetime) -> ExceptionMap:
    """Hand this occurrence and every later one over to another anchor."""
    result = dict(exceptions or {})
    result[original_start] = ExceptionEntry(ExceptionKind.DETACH)
    return result


def first_detach(exceptions: ExceptionMap | None) -> datetime | None:
    """Earliest detach marker, or None."""
    if not exceptions:
        return None
    detached = [k for k, v in exceptions.items() if v.is_detach]
    return min(detached) if detached else None


def split_at(exceptions: ExceptionMap | None, instant: datetime) -> tuple[ExceptionMap, ExceptionMap]:
    """Split into (keys before instant, keys at or after instant)."""
    before: ExceptionMap = {}
    after: ExceptionMap = {}
    for key, entry in (exceptions or {}).items():
        if key < instant:
            before[key] = entry
        else:
            after[key] = entry
    return before, after


def shift_keys(exceptions: ExceptionMap | None, delta: timedelta) -> ExceptionMap:
    """
    Move every key by delta.

    Used when an anchor's start moves so each key keeps naming the same
    logical occurrence. Time overrides inside the entries are left alone.
    """
    if not delta:
        return dict(exceptions or {})
    return {key + delta: entry for key, entry in (exceptions or {}).items()}


def prune_to(exceptions: ExceptionMap | None, keep: Callable[[datetime], bool]) -> ExceptionMap:
    """Keep only the keys accepted by the predicate."""
    return {key: entry for key, entry in (exceptions or {}).items() if keep(key)}


def to_dict(exceptions: ExceptionMap | None) -> dict[str, dict]:
    """Serialize for storage (ISO keys, sorted)."""
    return {key.isoformat(): exceptions[key].to_dict() for key in sorted(exceptions or {})}


def from_dict(data: dict | None) -> ExceptionMap:
    return {datetime.fromisoformat(k): ExceptionEntry.from_dict(v) for k, v in (data or {}).items()}
