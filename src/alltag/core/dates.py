"""Calendar date value type - no I/O dependencies."""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo

from .errors import InvalidCalendarDate, MalformedInput

_DATE_RX = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True, order=True)
class CalendarDate:
    """
    A calendar day without time of day or timezone.

    Field order makes the generated comparisons chronological.
    """

    year: int
    month: int
    day: int

    def __post_init__(self):
        try:
            date(self.year, self.month, self.day)
        except (TypeError, ValueError) as e:
            text = f"{self.year:>04}-{self.month:>02}-{self.day:>02}"
            raise InvalidCalendarDate(f"invalid date value: {text!r}") from e

    @classmethod
    def parse(cls, text: str) -> "CalendarDate":
        """Parse a date in the format YYYY-MM-DD."""
        if not isinstance(text, str) or not _DATE_RX.fullmatch(text):
            raise MalformedInput(f"malformed date value: {text!r}")
        year, month, day = (int(part) for part in text.split("-"))
        return cls(year, month, day)

    @classmethod
    def from_datetime(cls, dt: datetime | date) -> "CalendarDate":
        """The day a datetime falls on, in the datetime's own timezone."""
        return cls(dt.year, dt.month, dt.day)

    def format(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def __str__(self) -> str:
        return self.format()

    def first_second_in(self, tz: tzinfo | None) -> datetime:
        """Midnight at the start of this day in the given timezone."""
        return datetime(self.year, self.month, self.day, tzinfo=tz)

    def before(self, other: "CalendarDate") -> bool:
        return self < other

    def after(self, other: "CalendarDate") -> bool:
        return self > other

    def sub(self, other: "CalendarDate") -> int:
        """Days from `other` to this date (negative if `other` is later)."""
        # UTC has no DST gaps, so every day is exactly 24 hours long
        delta = self.first_second_in(timezone.utc) - other.first_second_in(timezone.utc)
        return round(delta / _ONE_DAY)

    def add_days(self, days: int) -> "CalendarDate":
        """Shift by that many days (into the past if negative)."""
        shifted = self.first_second_in(timezone.utc) + days * _ONE_DAY
        return CalendarDate.from_datetime(shifted)


EPOCH = CalendarDate(1970, 1, 1)
"""Stand-in for dates that have not been set yet."""


def parse_date(text: str) -> CalendarDate:
    """Parse a YYYY-MM-DD string into a CalendarDate."""
    return CalendarDate.parse(text)
