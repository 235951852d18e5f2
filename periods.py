from dataclasses import dataclass
from datetime import date
from typing import Optional

from dates import end_of_week, local_today, month_end, parse_local_date, start_of_week


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    anchor: Optional[date] = None,
    today: Optional[date] = None,
    week_starts_on: Optional[int] = None,
) -> Period:
    today = today or local_today()
    anchor = anchor or today
    if period == "day":
        return Period("day", anchor, anchor)
    if period == "week":
        return Period(
            "week",
            start_of_week(anchor, week_starts_on),
            end_of_week(anchor, week_starts_on),
        )
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = parse_local_date(start)
        end_date = parse_local_date(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Period("custom", start_date, end_date)
    if period and period != "month":
        raise ValueError(f"Unknown period: {period}")

    first = anchor.replace(day=1)
    return Period("month", first, month_end(first.year, first.month))
