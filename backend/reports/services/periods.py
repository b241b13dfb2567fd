"""
Date range helpers shared by every report.

All ranges are inclusive on both ends. Comparison windows:

- previous_period: the window of the same length ending the day before ``start``
  (a 30-day range compares to the prior 30 days, not the prior calendar month)
- previous_year: both boundaries moved back one year; Feb 29 becomes Feb 28
"""
import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterator, List, Optional

from core_backend.exceptions import ValidationError


class CompareMode(str, Enum):
    PREVIOUS_PERIOD = "previous_period"
    PREVIOUS_YEAR = "previous_year"


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValidationError(f"Range end {self.end} is before start {self.start}", field="end")

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def overlaps(self, start: date, end: date) -> bool:
        return start <= self.end and end >= self.start

    def iter_days(self) -> Iterator[date]:
        day = self.start
        while day <= self.end:
            yield day
            day += timedelta(days=1)

    def as_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def shift_year(day: date, years: int = -1) -> date:
    """Move a date by whole years, clamping Feb 29 to Feb 28 when needed."""
    target_year = day.year + years
    if day.month == 2 and day.day == 29 and not calendar.isleap(target_year):
        return date(target_year, 2, 28)
    return day.replace(year=target_year)


def previous_period(date_range: DateRange) -> DateRange:
    end = date_range.start - timedelta(days=1)
    return DateRange(end - timedelta(days=date_range.days - 1), end)


def previous_year(date_range: DateRange) -> DateRange:
    return DateRange(shift_year(date_range.start), shift_year(date_range.end))


def comparison_range(date_range: DateRange, mode) -> Optional[DateRange]:
    """Resolve a comparison mode (or None) to its window."""
    if mode is None:
        return None
    try:
        mode = CompareMode(mode)
    except ValueError:
        raise ValidationError(f"Unknown comparison mode: {mode}", field="compare_mode")
    if mode is CompareMode.PREVIOUS_PERIOD:
        return previous_period(date_range)
    return previous_year(date_range)


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def month_range(year: int, month: int) -> DateRange:
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}", field="month")
    return DateRange(date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1]))


def year_range(year: int) -> DateRange:
    return DateRange(date(year, 1, 1), date(year, 12, 31))


def month_key(day: date) -> str:
    return f"{day:%Y-%m}"


def months_in(date_range: DateRange) -> List[str]:
    keys = []
    year, month = date_range.start.year, date_range.start.month
    while (year, month) <= (date_range.end.year, date_range.end.month):
        keys.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return keys
