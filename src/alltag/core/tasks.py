"""Pure task domain logic - no I/O dependencies."""

import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, IntEnum

from .dates import EPOCH, CalendarDate
from .errors import PreconditionViolated, ValidationError


class TaskClass(Enum):
    """Kind of effort a task takes."""

    MENTAL = "mental"
    PHYSICAL = "physical"


class Priority(IntEnum):
    """Priority levels, ordered from least to most urgent."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class Classification:
    """
    Attributes entered when a task is classified.

    The priority is interpolated from initial_priority at starts_at to
    final_priority at due_at.
    """

    task_class: TaskClass
    initial_priority: Priority
    final_priority: Priority
    starts_at: CalendarDate
    due_at: CalendarDate
    recurrence_days: int = 0

    def __post_init__(self):
        if self.initial_priority >= self.final_priority:
            raise ValidationError("final priority must be higher than initial priority")

    @property
    def window_days(self) -> int:
        return self.due_at.sub(self.starts_at)


@dataclass(frozen=True)
class Task:
    """A task owned by one user. Unclassified while classification is None."""

    id: int
    label: str
    user: str
    classification: Classification | None = None

    @property
    def is_classified(self) -> bool:
        return self.classification is not None

    def require_classification(self) -> Classification:
        if self.classification is None:
            raise PreconditionViolated(f"task #{self.id} has not been classified")
        return self.classification

    @classmethod
    def from_record(cls, data: dict) -> "Task":
        """Create Task from a stored record."""
        classification = None
        if data.get("class") is not None:
            classification = Classification(
                task_class=TaskClass(data["class"]),
                initial_priority=Priority(data["init_priority"]),
                final_priority=Priority(data["final_priority"]),
                starts_at=CalendarDate.parse(data["starts_at"]),
                due_at=CalendarDate.parse(data["due_at"]),
                recurrence_days=data.get("recurrence_days", 0),
            )
        return cls(
            id=data["id"],
            label=data["label"],
            user=data["username"],
            classification=classification,
        )

    def to_record(self) -> dict:
        """Serialize to a stored record. Unclassified tasks keep zeroed fields."""
        c = self.classification
        return {
            "id": self.id,
            "label": self.label,
            "username": self.user,
            "class": c.task_class.value if c else None,
            "init_priority": int(c.initial_priority) if c else 0,
            "final_priority": int(c.final_priority) if c else 0,
            "recurrence_days": c.recurrence_days if c else 0,
            "starts_at": str(c.starts_at if c else EPOCH),
            "due_at": str(c.due_at if c else EPOCH),
        }


@dataclass(frozen=True)
class Location:
    """A place where tasks can be carried out."""

    id: int
    label: str
    user: str

    @classmethod
    def from_record(cls, data: dict) -> "Location":
        return cls(id=data["id"], label=data["label"], user=data["username"])

    def to_record(self) -> dict:
        return {"id": self.id, "label": self.label, "username": self.user}


@dataclass(frozen=True)
class TaskLocation:
    """One entry in the many-to-many mapping between tasks and locations."""

    task_id: int
    location_id: int


def score(task: Task, now: datetime) -> float:
    """
    Interpolate the current priority of a task.

    Linear from initial_priority at the start of the window to final_priority
    at the due date, and unbounded on both sides: overdue tasks keep climbing.
    Unclassified tasks score negative infinity.

    `now` must be sampled once by the caller and reused for every task in a
    ranking, otherwise the sort order may become inconsistent.
    """
    if task.classification is None:
        return -math.inf
    c = task.classification

    start_secs = c.starts_at.first_second_in(now.tzinfo).timestamp()
    end_secs = c.due_at.first_second_in(now.tzinfo).timestamp()
    if end_secs <= start_secs:
        raise PreconditionViolated(
            f"task #{task.id} has an empty window ({c.starts_at} to {c.due_at})"
        )

    progress = (now.timestamp() - start_secs) / (end_secs - start_secs)
    return c.initial_priority + (c.final_priority - c.initial_priority) * progress


def check_label(label: str) -> str:
    """Reject empty labels."""
    label = (label or "").strip()
    if not label:
        raise ValidationError("label may not be empty")
    return label


def parse_priority(value: int | str) -> Priority:
    try:
        return Priority(int(value))
    except ValueError:
        raise ValidationError(f"invalid priority value: {value!r}") from None


def parse_task_class(value: TaskClass | str) -> TaskClass:
    try:
        return TaskClass(value)
    except ValueError:
        raise ValidationError(f"invalid task class: {value!r}") from None


def classify(
    task: Task,
    *,
    task_class: TaskClass | str,
    initial_priority: int | str,
    final_priority: int | str,
    due_at: CalendarDate,
    today: CalendarDate,
    recurrence_days: int = 0,
    label: str | None = None,
) -> Task:
    """
    Validate classification input and return the classified task.

    The start date is set on first classification and kept afterwards.
    Locations are not handled here; callers must attach at least one.
    """
    new_label = check_label(task.label if label is None else label)
    cls_value = parse_task_class(task_class)

    initial = parse_priority(initial_priority)
    final = parse_priority(final_priority)
    if initial >= final:
        raise ValidationError("final priority must be higher than initial priority")

    if recurrence_days < 0:
        raise ValidationError(f"invalid recurrence_days value: {recurrence_days!r}")

    starts_at = task.classification.starts_at if task.classification else today
    if due_at.before(today):
        raise ValidationError("due date cannot be in the past")
    if not due_at.after(starts_at):
        raise ValidationError("due date must occur after start date")

    return replace(
        task,
        label=new_label,
        classification=Classification(
            task_class=cls_value,
            initial_priority=initial,
            final_priority=final,
            starts_at=starts_at,
            due_at=due_at,
            recurrence_days=recurrence_days,
        ),
    )
