from datetime import date, datetime
from typing import Optional, Union

from dates import Instant, parse_instant, to_local_date, to_utc_datetime
from domain import Identifier, Parcel
from recurrence import add_months


def split_amount(total_cents: int, count: int) -> list[int]:
    """Split ``total_cents`` into ``count`` shares that add back up exactly.

    Every share gets the floored base; the leftover cents go one at a time to
    the first shares.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValueError("Installment count must be an integer of at least 1")
    if total_cents <= 0:
        raise ValueError("Total amount must be positive")
    base, remainder = divmod(total_cents, count)
    return [base + 1 if i < remainder else base for i in range(count)]


def parcel_dates(anchor: date, count: int) -> list[date]:
    return [add_months(anchor, i, desired_day=anchor.day) for i in range(count)]


def generate_parcels(
    total_cents: int,
    count: int,
    description: str,
    anchor: Union[Instant, date],
    category_id: Optional[Identifier],
    purchase_id: Optional[Identifier] = None,
) -> list[Parcel]:
    amounts = split_amount(total_cents, count)
    if isinstance(anchor, date) and not isinstance(anchor, datetime):
        anchor_day = anchor
    else:
        anchor_day = to_local_date(parse_instant(anchor))
    return [
        Parcel(
            description=description,
            amount_cents=amount,
            occurred_at=to_utc_datetime(when),
            category_id=category_id,
            current=position,
            total=count,
            purchase_id=purchase_id,
        )
        for position, (amount, when) in enumerate(
            zip(amounts, parcel_dates(anchor_day, count)), start=1
        )
    ]
