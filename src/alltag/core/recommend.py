"""Ranking and next-task recommendation - no I/O dependencies."""

import math
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from .tasks import Location, Task, TaskClass, TaskLocation, score

RecommendationKey = tuple[int, TaskClass]


def has_started(task: Task, now: datetime) -> bool:
    """Whether the task's window has begun. False for unclassified tasks."""
    if task.classification is None:
        return False
    start = task.classification.starts_at.first_second_in(now.tzinfo)
    return start.timestamp() <= now.timestamp()


def display_rank(task: Task, now: datetime) -> float:
    """
    Rank used when listing tasks for a human.

    Like score(), except that tasks starting in the future rank by the
    negative number of seconds until they start, so they sort below every
    started task and the soonest one comes first among them.
    """
    if task.classification is None:
        return -math.inf
    # same-zone datetime arithmetic is wall-clock, timestamps are not
    start = task.classification.starts_at.first_second_in(now.tzinfo).timestamp()
    if start > now.timestamp():
        return -(start - now.timestamp())
    return score(task, now)


def sort_for_display(tasks: Iterable[Task], now: datetime) -> list[Task]:
    """Sort tasks by display rank, highest first."""
    return sorted(tasks, key=lambda t: display_rank(t, now), reverse=True)


def select_recommendations(
    open_tasks: Iterable[Task],
    associations: Iterable[TaskLocation],
    now: datetime,
) -> dict[RecommendationKey, int]:
    """
    Pick the next task for every (location, task class) pair.

    Only classified tasks whose window has started are eligible. The highest
    score wins; equal scores go to the lowest task ID, so the result does not
    depend on input order. Pairs without an eligible task are absent.
    """
    location_ids = defaultdict(list)
    for assoc in associations:
        location_ids[assoc.task_id].append(assoc.location_id)

    best: dict[RecommendationKey, tuple[float, int]] = {}
    for task in open_tasks:
        if not has_started(task, now):
            continue
        # higher score first, then lower ID
        rank = (score(task, now), -task.id)
        for location_id in location_ids.get(task.id, ()):
            key = (location_id, task.require_classification().task_class)
            if key not in best or rank > best[key]:
                best[key] = rank

    return {key: -neg_id for key, (_, neg_id) in best.items()}


def oldest_unclassified(tasks: Iterable[Task]) -> Task | None:
    """The unclassified task created first, if any."""
    unclassified = [t for t in tasks if not t.is_classified]
    if not unclassified:
        return None
    return min(unclassified, key=lambda t: t.id)


@dataclass
class StartPage:
    """What to do next, per location."""

    locations: list[Location]
    recommendations: dict[RecommendationKey, int] = field(default_factory=dict)
    unclassified_task: Task | None = None
    tasks_by_id: dict[int, Task] = field(default_factory=dict)

    def next_task_id(self, location_id: int, task_class: TaskClass) -> int | None:
        return self.recommendations.get((location_id, task_class))

    def next_task(self, location_id: int, task_class: TaskClass) -> Task | None:
        task_id = self.next_task_id(location_id, task_class)
        return self.tasks_by_id.get(task_id) if task_id is not None else None


def build_start_page(
    locations: list[Location],
    tasks: list[Task],
    associations: Iterable[TaskLocation],
    now: datetime,
) -> StartPage:
    """Assemble the start page from one user's records."""
    open_tasks = [t for t in tasks if t.is_classified]
    return StartPage(
        locations=locations,
        recommendations=select_recommendations(open_tasks, associations, now),
        unclassified_task=oldest_unclassified(tasks),
        tasks_by_id={t.id: t for t in open_tasks},
    )
