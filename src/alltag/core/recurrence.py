"""What happens to a task when it is closed - no I/O dependencies."""

from dataclasses import dataclass, replace
from datetime import datetime

from .dates import CalendarDate
from .errors import PreconditionViolated, ValidationError
from .tasks import Task


@dataclass(frozen=True)
class Delete:
    """Remove the task and its location associations."""

    task_id: int


@dataclass(frozen=True)
class Update:
    """Store the task with new field values."""

    task: Task

    @property
    def task_id(self) -> int:
        return self.task.id


TaskChange = Delete | Update


def resolve_closure(
    task: Task,
    now: datetime,
    recurrence_days: int | None = None,
) -> TaskChange:
    """
    Decide what closing a task does.

    One-shot tasks are deleted. Recurring tasks respawn: the window moves to
    start `recurrence_days` after today and keeps the length it had when the
    task was closed. Passing `recurrence_days` replaces the task's interval.
    """
    if recurrence_days is not None and recurrence_days < 0:
        raise ValidationError(f"invalid recurrence_days value: {recurrence_days!r}")

    c = task.classification
    if c is None:
        if recurrence_days:
            raise PreconditionViolated(
                f"task #{task.id} cannot recur before it has been classified"
            )
        return Delete(task.id)

    interval = c.recurrence_days if recurrence_days is None else recurrence_days
    if interval == 0:
        return Delete(task.id)

    starts_at = CalendarDate.from_datetime(now).add_days(interval)
    due_at = starts_at.add_days(c.window_days)
    return Update(
        replace(
            task,
            classification=replace(
                c, starts_at=starts_at, due_at=due_at, recurrence_days=interval
            ),
        )
    )
