"""Event repository interface."""

from typing import Protocol

from cando.core.calendar import Calendar, Event


class EventRepository(Protocol):
    """Interface for loading and storing calendars and anchor events."""

    def fetch_calendars(self) -> list[Calendar]:
        """Fetch all calendars."""
        ...

    def fetch_events(self) -> list[Event]:
        """Fetch all anchor and standalone events."""
        ...

    def save_events(self, events: list[Event]) -> None:
        """Insert or replace events by id."""
        ...

    def delete_events(self, event_ids: list[str]) -> None:
        """Remove events by id. Unknown ids are ignored."""
        ...

    def apply_event_changes(self, updated: list[Event], deleted_ids: list[str]) -> None:
        """Save replacements and remove deleted events together."""
        ...
