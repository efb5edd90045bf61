"""Alltag CLI - what to do next, wherever you are."""

import json
import logging
import sys
from dataclasses import dataclass

import click

from .config import Config, load_config
from .core.errors import AlltagError
from .core.recurrence import Delete
from .core.tasks import Priority, Task, TaskClass
from .ports.task_store import TaskStore
from .workflows import (
    classify_task,
    close_task,
    create_location,
    create_task,
    delete_location,
    get_store,
    list_locations,
    list_tasks,
    location_overview,
    rename_location,
    show_task,
    start_page,
)


@dataclass
class Session:
    """Per-invocation state shared by all commands."""

    config: Config
    store: TaskStore
    user: str


pass_session = click.make_pass_decorator(Session)


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def _parse_priority(ctx, param, value: str | None) -> Priority | None:
    if value is None:
        return None
    try:
        if value.isdigit():
            return Priority(int(value))
        return Priority[value.upper()]
    except (KeyError, ValueError):
        names = ", ".join(p.name.lower() for p in Priority)
        raise click.BadParameter(f"use 0-3 or one of: {names}")


def _describe(task: Task) -> str:
    c = task.classification
    if c is None:
        return f"#{task.id} {task.label} (unclassified)"
    return (
        f"#{task.id} {task.label} [{c.task_class.value}, "
        f"{c.initial_priority.label} -> {c.final_priority.label}, "
        f"{c.starts_at} to {c.due_at}]"
    )


def _task_json(task: Task) -> dict:
    c = task.classification
    return {
        "id": task.id,
        "label": task.label,
        "class": c.task_class.value if c else None,
        "initial_priority": int(c.initial_priority) if c else None,
        "final_priority": int(c.final_priority) if c else None,
        "starts_at": str(c.starts_at) if c else None,
        "due_at": str(c.due_at) if c else None,
        "recurrence_days": c.recurrence_days if c else 0,
    }


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, debug: bool):
    """Alltag - pick the next task for where you are."""
    config = load_config()
    if debug or config.debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )
    ctx.obj = Session(config=config, store=get_store(config), user=config.resolved_user())


@main.command("next")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_session
def next_cmd(session: Session, as_json: bool):
    """Show the next mental and physical task per location."""
    try:
        page = start_page(session.store, session.user, now=session.config.now())
    except AlltagError as e:
        _fail(e)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "locations": [
                        {
                            "id": loc.id,
                            "label": loc.label,
                            "mental": page.next_task_id(loc.id, TaskClass.MENTAL),
                            "physical": page.next_task_id(loc.id, TaskClass.PHYSICAL),
                        }
                        for loc in page.locations
                    ],
                    "unclassified_task_id": page.unclassified_task.id if page.unclassified_task else None,
                },
                indent=2,
            )
        )
        return

    if not page.locations:
        click.echo("No locations yet. Add one with 'alltag location add'.")
        return

    for loc in page.locations:
        click.echo(f"### {loc.label}")
        for task_class in TaskClass:
            task = page.next_task(loc.id, task_class)
            suggestion = f"#{task.id} {task.label}" if task else "-"
            click.echo(f"  {task_class.value:9} {suggestion}")

    if page.unclassified_task:
        t = page.unclassified_task
        click.echo(f"\nClassify a task: alltag task classify {t.id}  ({t.label})")


# ============== Tasks ==============


@main.group()
def task():
    """Manage tasks."""
    pass


@task.command("add")
@click.argument("label")
@pass_session
def task_add(session: Session, label: str):
    """Add an unclassified task."""
    try:
        t = create_task(session.store, session.user, label)
    except AlltagError as e:
        _fail(e)
    click.echo(f"Created task #{t.id}. Classify it with 'alltag task classify {t.id}'.")


@task.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_session
def task_list(session: Session, as_json: bool):
    """List all tasks, most urgent first."""
    try:
        tasks = list_tasks(session.store, session.user, now=session.config.now())
    except AlltagError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps([_task_json(t) for t in tasks], indent=2))
        return
    if not tasks:
        click.echo("No tasks.")
        return
    for t in tasks:
        click.echo(_describe(t))


@task.command("show")
@click.argument("task_id", type=int)
@pass_session
def task_show(session: Session, task_id: int):
    """Show a task."""
    try:
        details = show_task(session.store, session.user, task_id)
    except AlltagError as e:
        _fail(e)

    click.echo(_describe(details.task))
    c = details.task.classification
    if c and c.recurrence_days:
        click.echo(f"  recurs {c.recurrence_days} days after closing")
    if details.locations:
        click.echo(f"  at: {', '.join(loc.label for loc in details.locations)}")


@task.command("classify")
@click.argument("task_id", type=int)
@click.option(
    "--class", "task_class", required=True,
    type=click.Choice([c.value for c in TaskClass]), help="Kind of effort",
)
@click.option("--initial", "initial_priority", required=True, callback=_parse_priority,
              help="Initial priority (0-3 or low/normal/high/critical)")
@click.option("--final", "final_priority", required=True, callback=_parse_priority,
              help="Final priority, higher than the initial one")
@click.option("--due", "due_at", required=True, help="Due date (YYYY-MM-DD)")
@click.option("--location", "-l", "location_ids", type=int, multiple=True, required=True,
              help="Location ID (repeat for several)")
@click.option("--recurrence", "recurrence_days", type=click.IntRange(min=0), default=0,
              help="Respawn this many days after closing (0 = one-shot)")
@click.option("--label", default=None, help="New label")
@pass_session
def task_classify(session: Session, task_id: int, task_class: str, initial_priority: Priority,
                  final_priority: Priority, due_at: str, location_ids: tuple[int, ...],
                  recurrence_days: int, label: str | None):
    """Classify a task and choose its locations."""
    try:
        t = classify_task(
            session.store,
            session.user,
            task_id,
            task_class=task_class,
            initial_priority=initial_priority,
            final_priority=final_priority,
            due_at=due_at,
            location_ids=set(location_ids),
            recurrence_days=recurrence_days,
            label=label,
            now=session.config.now(),
        )
    except AlltagError as e:
        _fail(e)
    click.echo(f"✓ {_describe(t)}")


@task.command("close")
@click.argument("task_id", type=int)
@click.option("--recurrence", "recurrence_days", type=click.IntRange(min=0), default=None,
              help="Override the recurrence interval (0 = delete)")
@pass_session
def task_close(session: Session, task_id: int, recurrence_days: int | None):
    """Mark a task as done."""
    try:
        change = close_task(
            session.store, session.user, task_id, recurrence_days, now=session.config.now()
        )
    except AlltagError as e:
        _fail(e)

    if isinstance(change, Delete):
        click.echo(f"✓ Task #{task_id} done.")
    else:
        c = change.task.classification
        click.echo(f"✓ Task #{task_id} done. It comes back on {c.starts_at} (due {c.due_at}).")


# ============== Locations ==============


@main.group()
def location():
    """Manage locations."""
    pass


@location.command("list")
@pass_session
def location_list(session: Session):
    """List locations."""
    try:
        locations = list_locations(session.store, session.user)
    except AlltagError as e:
        _fail(e)

    if not locations:
        click.echo("You need to create at least one location first.")
        return
    for loc in locations:
        click.echo(f"#{loc.id} {loc.label}")


@location.command("add")
@click.argument("label")
@pass_session
def location_add(session: Session, label: str):
    """Add a location."""
    try:
        loc = create_location(session.store, session.user, label)
    except AlltagError as e:
        _fail(e)
    click.echo(f"Created location #{loc.id}.")


@location.command("show")
@click.argument("location_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_session
def location_show(session: Session, location_id: int, as_json: bool):
    """List a location's tasks, most urgent first."""
    try:
        overview = location_overview(
            session.store, session.user, location_id, now=session.config.now()
        )
    except AlltagError as e:
        _fail(e)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "id": overview.location.id,
                    "label": overview.location.label,
                    "tasks": [_task_json(t) for t in overview.tasks],
                },
                indent=2,
            )
        )
        return

    click.echo(f"### {overview.location.label}")
    if not overview.tasks:
        click.echo("  No tasks.")
        return
    for t in overview.tasks:
        marker = " (not started)" if overview.is_pending(t) else ""
        click.echo(f"  {_describe(t)}{marker}")


@location.command("rename")
@click.argument("location_id", type=int)
@click.argument("label")
@pass_session
def location_rename(session: Session, location_id: int, label: str):
    """Rename a location."""
    try:
        loc = rename_location(session.store, session.user, location_id, label)
    except AlltagError as e:
        _fail(e)
    click.echo(f"Renamed location #{loc.id} to {loc.label}.")


@location.command("delete")
@click.argument("location_id", type=int)
@click.confirmation_option(prompt="Really delete this location? This cannot be undone.")
@pass_session
def location_delete(session: Session, location_id: int):
    """Delete a location without tasks."""
    try:
        delete_location(session.store, session.user, location_id)
    except AlltagError as e:
        _fail(e)
    click.echo(f"Deleted location #{location_id}.")


if __name__ == "__main__":
    main()
