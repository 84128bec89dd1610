"""JSON snapshot storage adapter."""

import json
import logging
from pathlib import Path

from cando.core.calendar import Calendar, Event
from cando.core.errors import CandoError
from cando.core.tasks import Task

logger = logging.getLogger(__name__)


class StoreError(CandoError):
    """Raised when the snapshot file cannot be read or written."""

    pass


class JsonSnapshotStore:
    """
    Whole-state storage in one JSON file.

    Implements EventRepository and TaskRepository. Each save rewrites the
    file with the full snapshot, so a crash never leaves half an update.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def _load(self) -> dict:
        if not self.path.exists():
            return {"calendars": [], "events": [], "tasks": []}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Could not read {self.path}: expected a JSON object")
        return data

    def _dump(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(data, indent=2))
            tmp.replace(self.path)
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}") from e

    def _parse(self, items: list[dict], factory, kind: str) -> list:
        parsed = []
        for item in items:
            try:
                parsed.append(factory(item))
            except (KeyError, ValueError, TypeError) as e:
                raise StoreError(f"Malformed {kind} in {self.path}: {e}") from e
        return parsed

    # ============== Calendars ==============

    def fetch_calendars(self) -> list[Calendar]:
        return self._parse(self._load().get("calendars", []), Calendar.from_dict, "calendar")

    def save_calendars(self, calendars: list[Calendar]) -> None:
        data = self._load()
        data["calendars"] = _upsert(data.get("calendars", []), [c.to_dict() for c in calendars])
        self._dump(data)

    # ============== Events ==============

    def fetch_events(self) -> list[Event]:
        return self._parse(self._load().get("events", []), Event.from_dict, "event")

    def save_events(self, events: list[Event]) -> None:
        data = self._load()
        data["events"] = _upsert(data.get("events", []), [e.to_dict() for e in events])
        self._dump(data)

    def delete_events(self, event_ids: list[str]) -> None:
        data = self._load()
        doomed = set(event_ids)
        data["events"] = [e for e in data.get("events", []) if e.get("id") not in doomed]
        self._dump(data)

    def apply_event_changes(self, updated: list[Event], deleted_ids: list[str]) -> None:
        """Save replacements and remove deleted events in a single write."""
        data = self._load()
        doomed = set(deleted_ids)
        events = _upsert(data.get("events", []), [e.to_dict() for e in updated])
        data["events"] = [e for e in events if e.get("id") not in doomed]
        self._dump(data)
        logger.debug(f"Saved {len(updated)} event(s), deleted {len(doomed)}")

    # ============== Tasks ==============

    def fetch_all(self) -> list[Task]:
        return self._parse(self._load().get("tasks", []), Task.from_dict, "task")

    def save_tasks(self, tasks: list[Task]) -> None:
        data = self._load()
        data["tasks"] = _upsert(data.get("tasks", []), [t.to_dict() for t in tasks])
        self._dump(data)


def _upsert(existing: list[dict], incoming: list[dict]) -> list[dict]:
    """Replace records by id, appending new ones in order."""
    by_id = {item["id"]: item for item in incoming}
    merged = [by_id.pop(item.get("id"), item) for item in existing]
    merged.extend(by_id.values())
    return merged
