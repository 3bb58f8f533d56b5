"""Expand a date range and frequency into concrete commit dates."""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import logging

log = logging.getLogger(__name__)

DEFAULT_MAX_DATES = 30


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    WEEKLY = "weekly"


class DateRangeTooLargeError(ValueError):
    """The expanded range holds more dates than a single request may act on."""

    def __init__(self, count: int, limit: int):
        super().__init__(
            f"Too many commits requested ({count} dates). Please limit to {limit} or fewer."
        )
        self.count = count
        self.limit = limit


def _predicate(frequency: Frequency, start_date: date) -> Callable[[date], bool]:
    # date.weekday(): Monday == 0 ... Sunday == 6
    predicates: Dict[Frequency, Callable[[date], bool]] = {
        Frequency.DAILY: lambda d: True,
        Frequency.WEEKDAYS: lambda d: d.weekday() < 5,
        Frequency.WEEKENDS: lambda d: d.weekday() >= 5,
        Frequency.WEEKLY: lambda d: d.weekday() == start_date.weekday(),
    }
    return predicates[frequency]


def expand_dates(start_date: date, end_date: date, frequency) -> List[date]:
    """
    Dates from start_date to end_date inclusive, ascending, that satisfy the
    frequency predicate. An inverted range yields an empty list.
    """
    frequency = Frequency(frequency)
    include = _predicate(frequency, start_date)
    dates = []
    current = start_date
    while current <= end_date:
        if include(current):
            dates.append(current)
        current += timedelta(days=1)
    log.debug(f"Expanded {start_date}..{end_date} ({frequency.value}) to {len(dates)} dates")
    return dates


def ensure_within_limit(dates: List[date], limit: int = DEFAULT_MAX_DATES) -> None:
    if len(dates) > limit:
        raise DateRangeTooLargeError(len(dates), limit)


def partition_dates(dates: List[date], now: Optional[datetime] = None) -> Tuple[List[date], List[date]]:
    """
    Split into (past, future). A date is past when its start of day is strictly
    before `now`, so today counts as past. Past dates come back oldest first.
    """
    now = now or datetime.now()
    past, future = [], []
    for d in dates:
        if datetime.combine(d, time.min) < now:
            past.append(d)
        else:
            future.append(d)
    past.sort()
    return past, future


def expand_and_partition(
    start_date: date,
    end_date: date,
    frequency,
    limit: int = DEFAULT_MAX_DATES,
    now: Optional[datetime] = None
) -> Tuple[List[date], List[date]]:
    """Expand, enforce the cap, then partition. Raises before any side effect."""
    dates = expand_dates(start_date, end_date, frequency)
    ensure_within_limit(dates, limit)
    return partition_dates(dates, now)
