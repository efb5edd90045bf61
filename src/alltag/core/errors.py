"""Exceptions raised by the task engine and its store."""


class AlltagError(Exception):
    """Base class for all errors reported to the caller."""

    pass


class MalformedInput(AlltagError, ValueError):
    """Raised when a date string does not have the YYYY-MM-DD shape."""

    pass


class InvalidCalendarDate(AlltagError, ValueError):
    """Raised when a well-formed date string names a day that does not exist."""

    pass


class PreconditionViolated(AlltagError):
    """Raised when an operation needs a classified task and did not get one."""

    pass


class ValidationError(AlltagError, ValueError):
    """Raised when user input for a task or location is rejected."""

    pass


class NotFound(AlltagError, LookupError):
    """Raised when a task or location does not exist for the current user."""

    pass


class StoreError(AlltagError):
    """Raised when the task store cannot be read."""

    pass
