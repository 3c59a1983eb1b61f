"""
Working-Day Calendar and Date Arithmetic.

Provides the working-day predicate and day-stepping date arithmetic used by
every scheduling strategy. Weekends and bank holidays are non-working days.
"""

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from src.config.settings import settings


ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

# date.weekday(): Monday=0 ... Sunday=6
SATURDAY = 5
SUNDAY = 6


class InvalidDateError(ValueError):
    """Raised when a date input is malformed or out of range."""

    def __init__(self, value, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid date {value!r}: {reason}")


def parse_iso_date(value, min_year: int = None, max_year: int = None) -> date:
    """
    Parse and validate an ISO (YYYY-MM-DD) date at the engine boundary.

    Args:
        value: ISO string or date instance
        min_year: Earliest accepted year (default: settings.MIN_YEAR)
        max_year: Latest accepted year (default: settings.MAX_YEAR)

    Returns:
        The parsed date

    Raises:
        InvalidDateError: If the value is malformed, impossible or out of range
    """
    min_year = settings.MIN_YEAR if min_year is None else min_year
    max_year = settings.MAX_YEAR if max_year is None else max_year

    if isinstance(value, date):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not ISO_DATE_PATTERN.match(text):
            raise InvalidDateError(value, "expected YYYY-MM-DD")
        try:
            parsed = date.fromisoformat(text)
        except ValueError:
            raise InvalidDateError(value, "not a calendar date")
    else:
        raise InvalidDateError(value, f"unsupported type {type(value).__name__}")

    if not min_year <= parsed.year <= max_year:
        raise InvalidDateError(value, f"year must be between {min_year} and {max_year}")

    return parsed


@dataclass
class WorkCalendar:
    """
    Monday-Friday calendar with a bank holiday exclusion set.

    Handles:
    - Working-day checks (weekends and holidays excluded)
    - Stepping forward and backward by working days
    - Counting working days between two dates
    """

    holidays: frozenset[date] = field(default_factory=frozenset)
    calendar_id: str = 'default'

    def __post_init__(self):
        self.holidays = frozenset(self.holidays)

    @classmethod
    def from_iso_dates(cls, values: Iterable[str], calendar_id: str = 'default') -> 'WorkCalendar':
        """Build a calendar from ISO holiday strings."""
        return cls(holidays=frozenset(parse_iso_date(v) for v in values), calendar_id=calendar_id)

    def is_holiday(self, dt: date) -> bool:
        return dt in self.holidays

    def is_working_day(self, dt: date) -> bool:
        """Check if a date is neither a weekend day nor a holiday."""
        return dt.weekday() < SATURDAY and dt not in self.holidays

    def add_working_days(self, start: date, days: int) -> date:
        """Step forward over `days` working days. Returns start if days <= 0."""
        if days <= 0:
            return start

        current = start
        remaining = days

        while remaining > 0:
            current += timedelta(days=1)
            if self.is_working_day(current):
                remaining -= 1

        return current

    def subtract_working_days(self, start: date, days: int) -> date:
        """Step backward over `days` working days. Returns start if days <= 0."""
        if days <= 0:
            return start

        current = start
        remaining = days

        while remaining > 0:
            current -= timedelta(days=1)
            if self.is_working_day(current):
                remaining -= 1

        return current

    def shift_working_days(self, start: date, days: int) -> date:
        """Signed variant: positive steps forward, negative steps backward."""
        if days >= 0:
            return self.add_working_days(start, days)
        return self.subtract_working_days(start, -days)

    def working_days_between(self, start: date, end: date) -> int:
        """
        Count working days in (start, end].

        Negative when end precedes start. For n >= 0,
        working_days_between(a, add_working_days(a, n)) == n.
        """
        if end < start:
            return -self.working_days_between(end, start)

        count = 0
        current = start
        while current < end:
            current += timedelta(days=1)
            if self.is_working_day(current):
                count += 1
        return count

    def count_working_days(self, start: date, end: date) -> int:
        """Count working days between two dates (inclusive)."""
        count = 0
        current = start
        while current <= end:
            if self.is_working_day(current):
                count += 1
            current += timedelta(days=1)
        return count

    def previous_working_day(self, dt: date) -> date:
        """Latest working day on or before dt."""
        current = dt
        while not self.is_working_day(current):
            current -= timedelta(days=1)
        return current

    def next_working_day(self, dt: date) -> date:
        """Earliest working day on or after dt."""
        current = dt
        while not self.is_working_day(current):
            current += timedelta(days=1)
        return current

    def __repr__(self) -> str:
        return f"WorkCalendar({self.calendar_id}, 5-day week, {len(self.holidays)} holidays)"
