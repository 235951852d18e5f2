from datetime import date, timedelta
from typing import Iterator, Optional

from dates import days_in_month, month_end, month_start, shift_month
from domain import FixedItem


def add_months(base: date, months: int, *, desired_day: Optional[int] = None) -> date:
    """Move ``base`` by whole months, snapping to the last day of short months.

    ``desired_day`` keeps the original anchor day across a chain of short
    months (Jan 31 -> Feb 29 -> Mar 31).
    """
    year, month = shift_month(base.year, base.month, months)
    desired_day = desired_day or base.day
    return date(year, month, min(desired_day, days_in_month(year, month)))


def is_active_in_month(item: FixedItem, target: date) -> bool:
    """Month-level test: does the item's active period overlap ``target``'s month?"""
    first = month_start(target.year, target.month)
    last = month_end(target.year, target.month)
    if item.start_date > last:
        return False
    end = item.end_date
    return end is None or end >= first


def occurs_on_date(item: FixedItem, target: date) -> bool:
    if target.day != item.day:
        return False
    if target < item.start_date:
        return False
    end = item.end_date
    return end is None or target <= end


def occurrence_in_month(item: FixedItem, year: int, month: int) -> Optional[date]:
    # Day 31 in a 30-day month has no occurrence; nothing rolls over.
    if item.day > days_in_month(year, month):
        return None
    candidate = date(year, month, item.day)
    return candidate if occurs_on_date(item, candidate) else None


def occurrences_between(item: FixedItem, start: date, end: date) -> Iterator[date]:
    if end < start:
        return
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        occurrence = occurrence_in_month(item, year, month)
        if occurrence is not None and start <= occurrence <= end:
            yield occurrence
        year, month = shift_month(year, month, 1)


def iter_days(start: date, end: date) -> Iterator[date]:
    if end < start:
        return
    current = start
    while True:
        yield current
        if current == end:
            return
        current += timedelta(days=1)
