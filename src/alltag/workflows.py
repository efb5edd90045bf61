"""Use cases shared by every front end.

Each function reads from the task store, runs the pure core, and writes
results back. `now` is sampled once per call (or passed in) and threaded
through every scoring call of that operation.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .adapters.json_store import JsonTaskStore
from .config import Config, local_zone
from .core.dates import CalendarDate
from .core.errors import ValidationError
from .core.recommend import StartPage, build_start_page, has_started, sort_for_display
from .core.recurrence import Delete, TaskChange, Update, resolve_closure
from .core.tasks import Location, Task, TaskClass, classify
from .ports.task_store import TaskStore

logger = logging.getLogger(__name__)


def get_store(config: Config) -> JsonTaskStore:
    """Open the task store configured in config."""
    return JsonTaskStore(config.resolved_store_path())


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(local_zone())


# ============== Start Page ==============


def start_page(store: TaskStore, user: str, now: datetime | None = None) -> StartPage:
    """Recommend the next mental and physical task for every location."""
    now = _now(now)
    page = build_start_page(
        locations=store.list_locations(user),
        tasks=store.list_tasks(user),
        associations=store.list_task_locations(user),
        now=now,
    )
    logger.debug(f"{len(page.recommendations)} recommendations for {user} at {now.isoformat()}")
    return page


# ============== Locations ==============


@dataclass
class LocationOverview:
    """A location with its tasks in display order."""

    location: Location
    tasks: list[Task]
    now: datetime

    def is_pending(self, task: Task) -> bool:
        """Whether the task's window has not started yet."""
        return task.is_classified and not has_started(task, self.now)


def list_locations(store: TaskStore, user: str) -> list[Location]:
    return store.list_locations(user)


def location_overview(
    store: TaskStore,
    user: str,
    location_id: int,
    now: datetime | None = None,
) -> LocationOverview:
    """List a location's tasks, most urgent first."""
    now = _now(now)
    location = store.get_location(user, location_id)
    task_ids = {a.task_id for a in store.list_task_locations(user) if a.location_id == location_id}
    tasks = [t for t in store.list_tasks(user) if t.id in task_ids]
    return LocationOverview(location=location, tasks=sort_for_display(tasks, now), now=now)


def create_location(store: TaskStore, user: str, label: str) -> Location:
    location = store.add_location(user, label)
    logger.info(f"Created location #{location.id} ({location.label})")
    return location


def rename_location(store: TaskStore, user: str, location_id: int, label: str) -> Location:
    return store.rename_location(user, location_id, label)


def delete_location(store: TaskStore, user: str, location_id: int) -> None:
    """Delete a location. Refused while tasks are still attached to it."""
    store.get_location(user, location_id)
    if any(a.location_id == location_id for a in store.list_task_locations(user)):
        raise ValidationError(f"location #{location_id} still has tasks")
    store.delete_location(user, location_id)
    logger.info(f"Deleted location #{location_id}")


# ============== Tasks ==============


@dataclass
class TaskDetails:
    """A task together with the locations it is attached to."""

    task: Task
    locations: list[Location]


def create_task(store: TaskStore, user: str, label: str) -> Task:
    """Create an unclassified task."""
    task = store.add_task(user, label)
    logger.info(f"Created task #{task.id} ({task.label})")
    return task


def list_tasks(store: TaskStore, user: str, now: datetime | None = None) -> list[Task]:
    """All tasks of the user, most urgent first, unclassified last."""
    return sort_for_display(store.list_tasks(user), _now(now))


def show_task(store: TaskStore, user: str, task_id: int) -> TaskDetails:
    task = store.get_task(user, task_id)
    location_ids = {a.location_id for a in store.list_task_locations(user) if a.task_id == task_id}
    locations = [loc for loc in store.list_locations(user) if loc.id in location_ids]
    return TaskDetails(task=task, locations=locations)


def classify_task(
    store: TaskStore,
    user: str,
    task_id: int,
    *,
    task_class: TaskClass | str,
    initial_priority: int | str,
    final_priority: int | str,
    due_at: CalendarDate | str,
    location_ids: list[int] | set[int],
    recurrence_days: int = 0,
    label: str | None = None,
    now: datetime | None = None,
) -> Task:
    """
    Classify (or reclassify) a task and set its locations.

    Task fields and location associations are written together.
    """
    now = _now(now)
    today = CalendarDate.from_datetime(now)
    if isinstance(due_at, str):
        due_at = CalendarDate.parse(due_at)

    task = classify(
        store.get_task(user, task_id),
        task_class=task_class,
        initial_priority=initial_priority,
        final_priority=final_priority,
        due_at=due_at,
        today=today,
        recurrence_days=recurrence_days,
        label=label,
    )

    new_location_ids = set(location_ids)
    if not new_location_ids:
        raise ValidationError("need to specify at least one location")
    valid_ids = {loc.id for loc in store.list_locations(user)}
    for location_id in sorted(new_location_ids):
        if location_id not in valid_ids:
            raise ValidationError(f"invalid location ID: {location_id!r}")

    store.apply(user, Update(task), location_ids=new_location_ids)
    logger.info(f"Classified task #{task.id} as {task.classification.task_class.value}")
    return task


def close_task(
    store: TaskStore,
    user: str,
    task_id: int,
    recurrence_days: int | None = None,
    now: datetime | None = None,
) -> TaskChange:
    """Close a task: delete it, or respawn it if it recurs."""
    now = _now(now)
    change = resolve_closure(store.get_task(user, task_id), now, recurrence_days)
    store.apply(user, change)

    if isinstance(change, Delete):
        logger.info(f"Closed task #{task_id}")
    else:
        c = change.task.classification
        logger.info(f"Task #{task_id} respawns {c.starts_at} (due {c.due_at})")
    return change
