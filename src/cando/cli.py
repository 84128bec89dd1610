"""Cando CLI - tasks and calendar from the terminal."""

import json
import logging
import sys
from datetime import date, datetime

import click

from .config import load_config
from .core.calendar import Frequency, RecurrenceRule, find_event
from .core.errors import CandoError
from .core.hashtags import format_due_date
from .core.priority import calculate_priority, priority_label
from .workflows import add_task, agenda, get_store, mutate_series, next_free_slot, recommend, schedule_task


def _parse_datetime(value: str | None, option: str) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DDTHH:MM, got {value!r}", param_hint=option)


def _fail(message) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="cando")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Cando - tasks and calendar engine."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@main.command("agenda")
@click.option(
    "--date",
    "-d",
    "target_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="First day (YYYY-MM-DD), defaults to today",
)
@click.option("--days", default=1, show_default=True, help="Number of days to show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def agenda_cmd(target_date: datetime | None, days: int, as_json: bool):
    """Show events and tasks needing attention."""
    config = load_config()
    store = get_store(config)
    start = target_date.date() if target_date else date.today()
    try:
        data = agenda(config, store, store, start=start, days=days)
    except CandoError as e:
        _fail(e)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "start": data.start.isoformat(),
                    "days": data.days,
                    "occurrences": [o.to_dict() for o in data.occurrences],
                    "my_day": [t.to_dict() for t in data.my_day],
                    "overdue": [t.to_dict() for t in data.overdue],
                    "due_soon": [t.to_dict() for t in data.due_soon],
                },
                indent=2,
            )
        )
        return

    if not data.occurrences:
        click.echo("No events.")
    current_date = None
    for occ in data.occurrences:
        occ_date = occ.start.date()
        if occ_date != current_date:
            if current_date is not None:
                click.echo()
            click.echo(f"### {occ_date.strftime('%A, %B %d')}")
            current_date = occ_date
        loc = f" @ {occ.location}" if occ.location else ""
        click.echo(f"  {occ.format_time():8} {occ.title}{loc}")

    for heading, tasks in (("My Day", data.my_day), ("Overdue", data.overdue), ("Due soon", data.due_soon)):
        if not tasks:
            continue
        click.echo(f"\n{heading}:")
        for task in tasks:
            due = f" ({format_due_date(task.due_date, start)})" if task.due_date else ""
            click.echo(f"  - {task.content}{due}")


@main.command("free-slot")
@click.option("--duration", "-m", type=int, default=None, help="Minutes needed (default from config)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def free_slot_cmd(duration: int | None, as_json: bool):
    """Find the next free slot."""
    config = load_config()
    try:
        slot = next_free_slot(config, get_store(config), duration)
    except CandoError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps(slot.to_dict() if slot else None, indent=2))
    elif slot is None:
        click.echo(f"No free slot in the next {config.horizon_days} days.")
    else:
        click.echo(slot.format())


@main.command("schedule")
@click.argument("task_id")
@click.option("--calendar", "calendar_id", default=None, help="Target calendar id")
def schedule_cmd(task_id: str, calendar_id: str | None):
    """Book the next free slot for a task."""
    config = load_config()
    store = get_store(config)
    try:
        event = schedule_task(config, store, store, task_id, calendar_id=calendar_id)
    except CandoError as e:
        _fail(e)

    if event is None:
        click.echo("No free slot found.")
        return
    click.echo(f"Scheduled \"{event.title}\" {event.start.strftime('%a %b %d %H:%M')}-{event.end.strftime('%H:%M')}")


@main.command("recommend")
@click.option("--limit", "-n", type=int, default=None, help="Maximum tasks to show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def recommend_cmd(limit: int | None, as_json: bool):
    """List tasks worth doing next."""
    config = load_config()
    try:
        recommendations = recommend(config, get_store(config), limit=limit)
    except CandoError as e:
        _fail(e)

    if as_json:
        click.echo(
            json.dumps(
                [{"task": r.task.to_dict(), "score": r.score, "reason": r.reason} for r in recommendations],
                indent=2,
            )
        )
        return

    if not recommendations:
        click.echo("Nothing to recommend.")
        return
    for r in recommendations:
        label = priority_label(calculate_priority(r.task.impact, r.task.urgency)) or ""
        click.echo(f"[{r.score:3}] {label:4} {r.task.content} - {r.reason}")


@main.command("add-task")
@click.argument("text", nargs=-1, required=True)
def add_task_cmd(text: tuple[str, ...]):
    """Add a task. Hashtags like #d30 #duetomorrow #i8u5 are parsed."""
    config = load_config()
    try:
        task = add_task(get_store(config), " ".join(text))
    except CandoError as e:
        _fail(e)
    click.echo(f"Added {task.id}: {task.content}")


_SCOPES = click.Choice(["this", "future", "all"])


@main.command("delete-event")
@click.argument("event_id")
@click.option("--at", "occurrence", default=None, help="Original start of the occurrence (ISO), defaults to the event start")
@click.option("--scope", type=_SCOPES, default="this", show_default=True)
def delete_event_cmd(event_id: str, occurrence: str | None, scope: str):
    """Delete an event or some occurrences of a series."""
    config = load_config()
    store = get_store(config)
    try:
        at = _parse_datetime(occurrence, "--at") or _event_start(store, event_id)
        result = mutate_series(store, "delete", scope, event_id, at)
    except CandoError as e:
        _fail(e)
    _report(result)


@main.command("edit-event")
@click.argument("event_id")
@click.option("--at", "occurrence", default=None, help="Original start of the occurrence (ISO), defaults to the event start")
@click.option("--scope", type=_SCOPES, default="this", show_default=True)
@click.option("--title", default=None)
@click.option("--description", default=None)
@click.option("--location", default=None)
@click.option("--start", "new_start", default=None, help="New start (ISO)")
@click.option("--end", "new_end", default=None, help="New end (ISO)")
@click.option("--repeat", type=click.Choice([f.value for f in Frequency]), default=None, help="New frequency (scope all)")
@click.option("--interval", type=int, default=None, help="New interval (with --repeat)")
def edit_event_cmd(
    event_id: str,
    occurrence: str | None,
    scope: str,
    title: str | None,
    description: str | None,
    location: str | None,
    new_start: str | None,
    new_end: str | None,
    repeat: str | None,
    interval: int | None,
):
    """Change an event or some occurrences of a series."""
    changes = {
        k: v
        for k, v in {
            "title": title,
            "description": description,
            "location": location,
            "start": _parse_datetime(new_start, "--start"),
            "end": _parse_datetime(new_end, "--end"),
        }.items()
        if v is not None
    }
    if interval is not None and repeat is None:
        raise click.UsageError("--interval needs --repeat")
    if repeat is not None:
        changes["recurrence"] = RecurrenceRule(Frequency(repeat), interval=interval or 1)

    config = load_config()
    store = get_store(config)
    try:
        at = _parse_datetime(occurrence, "--at") or _event_start(store, event_id)
        result = mutate_series(store, "modify", scope, event_id, at, changes)
    except CandoError as e:
        _fail(e)
    _report(result)


def _event_start(store, event_id: str) -> datetime:
    event = find_event(store.fetch_events(), event_id)
    if event is None:
        _fail(f"Event {event_id!r} not found")
    return event.start


def _report(result) -> None:
    if not result.success:
        _fail(result.error)
    for event in result.updated_events:
        click.echo(f"Saved {event.id}: {event.title} ({event.start.isoformat()})")
    for event_id in result.deleted_event_ids:
        click.echo(f"Deleted {event_id}")
