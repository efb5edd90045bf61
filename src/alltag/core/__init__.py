"""Functional core - pure business logic with no I/O."""

from .dates import EPOCH, CalendarDate, parse_date
from .errors import (
    AlltagError,
    InvalidCalendarDate,
    MalformedInput,
    NotFound,
    PreconditionViolated,
    StoreError,
    ValidationError,
)
from .tasks import Classification, Location, Priority, Task, TaskClass, TaskLocation, classify, score
from .recommend import (
    StartPage,
    build_start_page,
    display_rank,
    oldest_unclassified,
    select_recommendations,
    sort_for_display,
)
from .recurrence import Delete, TaskChange, Update, resolve_closure

__all__ = [
    # Dates
    "CalendarDate",
    "EPOCH",
    "parse_date",
    # Errors
    "AlltagError",
    "InvalidCalendarDate",
    "MalformedInput",
    "NotFound",
    "PreconditionViolated",
    "StoreError",
    "ValidationError",
    # Tasks
    "Classification",
    "Location",
    "Priority",
    "Task",
    "TaskClass",
    "TaskLocation",
    "classify",
    "score",
    # Recommendations
    "StartPage",
    "build_start_page",
    "display_rank",
    "oldest_unclassified",
    "select_recommendations",
    "sort_for_display",
    # Recurrence
    "Delete",
    "TaskChange",
    "Update",
    "resolve_closure",
]
