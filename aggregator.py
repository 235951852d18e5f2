"""Read-side queries over a ledger snapshot.

Everything here is pure: the functions take a ``Snapshot`` and return new
frozen dataclasses. Fixed items are expanded into occurrences on the fly and
resolved against the monthly variations; nothing is written back.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from config import get_settings
from dates import (
    days_in_month,
    end_of_week,
    is_same_day,
    local_today,
    month_start,
    shift_month,
    start_of_week,
    to_local_date,
)
from domain import (
    FixedItem,
    Identifier,
    InstallmentInfo,
    Snapshot,
    Transaction,
    TransactionKind,
)
from recurrence import (
    is_active_in_month,
    iter_days,
    occurrences_between,
    occurs_on_date,
)
from variations import VariationIndex


class EventSource(str, Enum):
    variable = "variable"
    installment = "installment"
    fixed = "fixed"


@dataclass(frozen=True)
class CategoryRef:
    id: Optional[Identifier]
    name: str
    color: Optional[str]


@dataclass(frozen=True)
class CalendarEvent:
    id: Optional[Identifier]
    source: EventSource
    date: date
    description: str
    amount_cents: int
    is_expense: bool
    category_id: Optional[Identifier]
    category: str
    category_color: Optional[str]
    is_fixed: bool = False
    has_variation: bool = False
    standard_amount_cents: Optional[int] = None
    installment: Optional[InstallmentInfo] = None

    @property
    def signed_cents(self) -> int:
        return -self.amount_cents if self.is_expense else self.amount_cents


@dataclass(frozen=True)
class DayEvents:
    date: date
    events: tuple[CalendarEvent, ...]
    income_cents: int
    expense_cents: int
    net_cents: int


@dataclass(frozen=True)
class RangeEvents:
    start: date
    end: date
    days: tuple[DayEvents, ...]
    income_cents: int
    expense_cents: int
    net_cents: int

    @property
    def events(self) -> list[CalendarEvent]:
        return [event for day in self.days for event in day.events]


@dataclass(frozen=True)
class MonthSummary:
    year: int
    month: int
    variable_income_cents: int
    fixed_income_cents: int
    variable_expense_cents: int
    installment_expense_cents: int
    fixed_expense_cents: int
    income_cents: int
    expense_cents: int
    committed_expense_cents: int
    balance_cents: int


@dataclass(frozen=True)
class MonthBalance:
    year: int
    month: int
    label: str
    income_cents: int
    expense_cents: int
    net_cents: int


@dataclass(frozen=True)
class CategoryTotal:
    category_id: Optional[Identifier]
    name: str
    color: Optional[str]
    income_cents: int
    expense_cents: int


class BillStatus(str, Enum):
    overdue = "overdue"
    due_today = "due_today"
    upcoming = "upcoming"
    scheduled = "scheduled"


@dataclass(frozen=True)
class Bill:
    id: Optional[Identifier]
    source: EventSource
    description: str
    amount_cents: int
    due_date: date
    status: BillStatus
    days_until: Optional[int]
    installment: Optional[InstallmentInfo] = None


@dataclass(frozen=True)
class UpcomingBills:
    year: int
    month: int
    bills: tuple[Bill, ...]
    total_cents: int


def category_ref(snapshot: Snapshot, category_id: Optional[Identifier]) -> CategoryRef:
    category = snapshot.category(category_id)
    if category is None:
        settings = get_settings()
        return CategoryRef(
            id=None,
            name=settings.uncategorized_label,
            color=settings.uncategorized_color,
        )
    return CategoryRef(id=category.id, name=category.name, color=category.color)


def _transaction_event(snapshot: Snapshot, txn: Transaction, day: date) -> CalendarEvent:
    ref = category_ref(snapshot, txn.category_id)
    return CalendarEvent(
        id=txn.id,
        source=EventSource.installment if txn.is_installment else EventSource.variable,
        date=day,
        description=txn.description,
        amount_cents=txn.amount_cents,
        is_expense=txn.kind == TransactionKind.expense,
        category_id=ref.id,
        category=ref.name,
        category_color=ref.color,
        installment=txn.installment,
    )


def _fixed_event(
    snapshot: Snapshot, item: FixedItem, day: date, index: VariationIndex
) -> CalendarEvent:
    ref = category_ref(snapshot, item.category_id)
    amount = index.resolve(item.id, item.kind, day.year, day.month - 1, item.amount_cents)
    return CalendarEvent(
        id=item.id,
        source=EventSource.fixed,
        date=day,
        description=item.description,
        amount_cents=amount,
        is_expense=item.kind == TransactionKind.expense,
        category_id=ref.id,
        category=ref.name,
        category_color=ref.color,
        is_fixed=True,
        has_variation=amount != item.amount_cents,
        standard_amount_cents=item.amount_cents,
    )


def _totals(events: Iterable[CalendarEvent]) -> tuple[int, int]:
    income = expense = 0
    for event in events:
        if event.is_expense:
            expense += event.amount_cents
        else:
            income += event.amount_cents
    return income, expense


def _day_events(day: date, events: list[CalendarEvent]) -> DayEvents:
    income, expense = _totals(events)
    return DayEvents(
        date=day,
        events=tuple(events),
        income_cents=income,
        expense_cents=expense,
        net_cents=income - expense,
    )


def events_on_date(snapshot: Snapshot, day: date) -> list[CalendarEvent]:
    """Transactions and parcels on ``day`` followed by the fixed items due that day."""
    index = VariationIndex(snapshot.variations)
    events = [
        _transaction_event(snapshot, txn, day)
        for txn in snapshot.transactions
        if is_same_day(txn.occurred_at, day)
    ]
    events.extend(
        _fixed_event(snapshot, item, day, index)
        for item in snapshot.fixed_items
        if occurs_on_date(item, day)
    )
    return events


def events_in_range(snapshot: Snapshot, start: date, end: date) -> RangeEvents:
    if end < start:
        raise ValueError("Range end must not be before its start")
    index = VariationIndex(snapshot.variations)
    buckets: dict[date, list[CalendarEvent]] = defaultdict(list)
    for txn in snapshot.transactions:
        day = to_local_date(txn.occurred_at)
        if start <= day <= end:
            buckets[day].append(_transaction_event(snapshot, txn, day))
    for item in snapshot.fixed_items:
        for day in occurrences_between(item, start, end):
            buckets[day].append(_fixed_event(snapshot, item, day, index))

    days = tuple(_day_events(day, buckets.get(day, [])) for day in iter_days(start, end))
    income = sum(d.income_cents for d in days)
    expense = sum(d.expense_cents for d in days)
    return RangeEvents(
        start=start,
        end=end,
        days=days,
        income_cents=income,
        expense_cents=expense,
        net_cents=income - expense,
    )


def events_in_week(
    snapshot: Snapshot, day: date, week_starts_on: Optional[int] = None
) -> RangeEvents:
    return events_in_range(
        snapshot,
        start_of_week(day, week_starts_on),
        end_of_week(day, week_starts_on),
    )


def _month_summary(
    snapshot: Snapshot, year: int, month: int, index: VariationIndex
) -> MonthSummary:
    variable_income = variable_expense = installment_expense = 0
    for txn in snapshot.transactions:
        day = to_local_date(txn.occurred_at)
        if (day.year, day.month) != (year, month):
            continue
        if txn.is_installment:
            installment_expense += txn.amount_cents
        elif txn.kind == TransactionKind.income:
            variable_income += txn.amount_cents
        else:
            variable_expense += txn.amount_cents

    fixed_income = fixed_expense = 0
    target = month_start(year, month)
    for item in snapshot.fixed_items:
        if not is_active_in_month(item, target):
            continue
        amount = index.resolve(item.id, item.kind, year, month - 1, item.amount_cents)
        if item.kind == TransactionKind.income:
            fixed_income += amount
        else:
            fixed_expense += amount

    income = variable_income + fixed_income
    expense = variable_expense + installment_expense + fixed_expense
    return MonthSummary(
        year=year,
        month=month,
        variable_income_cents=variable_income,
        fixed_income_cents=fixed_income,
        variable_expense_cents=variable_expense,
        installment_expense_cents=installment_expense,
        fixed_expense_cents=fixed_expense,
        income_cents=income,
        expense_cents=expense,
        committed_expense_cents=fixed_expense + installment_expense,
        balance_cents=income - expense,
    )


def month_summary(snapshot: Snapshot, year: int, month: int) -> MonthSummary:
    """Totals for a calendar month (``month`` is 1-12).

    Fixed items count once if their active period overlaps the month at all,
    at the amount resolved for that month.
    """
    return _month_summary(snapshot, year, month, VariationIndex(snapshot.variations))


def balance_history(
    snapshot: Snapshot, year: int, month: int, months: int = 12
) -> list[MonthBalance]:
    """Net balance per month for the ``months`` months ending at (year, month), oldest first."""
    if months < 1:
        raise ValueError("History must cover at least one month")
    index = VariationIndex(snapshot.variations)
    series: list[MonthBalance] = []
    for offset in range(months - 1, -1, -1):
        y, m = shift_month(year, month, -offset)
        summary = _month_summary(snapshot, y, m, index)
        series.append(
            MonthBalance(
                year=y,
                month=m,
                label=f"{y:04d}-{m:02d}",
                income_cents=summary.income_cents,
                expense_cents=summary.expense_cents,
                net_cents=summary.balance_cents,
            )
        )
    return series


def category_breakdown(
    snapshot: Snapshot,
    year: int,
    month: int,
    kind: Optional[TransactionKind] = None,
) -> list[CategoryTotal]:
    index = VariationIndex(snapshot.variations)
    totals: dict[Optional[Identifier], list[int]] = defaultdict(lambda: [0, 0])
    refs: dict[Optional[Identifier], CategoryRef] = {}

    def add(
        category_id: Optional[Identifier], entry_kind: TransactionKind, amount: int
    ) -> None:
        if kind is not None and entry_kind != kind:
            return
        ref = category_ref(snapshot, category_id)
        refs.setdefault(ref.id, ref)
        slot = 0 if entry_kind == TransactionKind.income else 1
        totals[ref.id][slot] += amount

    for txn in snapshot.transactions:
        day = to_local_date(txn.occurred_at)
        if (day.year, day.month) == (year, month):
            add(txn.category_id, txn.kind, txn.amount_cents)

    target = month_start(year, month)
    for item in snapshot.fixed_items:
        if is_active_in_month(item, target):
            amount = index.resolve(item.id, item.kind, year, month - 1, item.amount_cents)
            add(item.category_id, item.kind, amount)

    rows = [
        CategoryTotal(
            category_id=key,
            name=refs[key].name,
            color=refs[key].color,
            income_cents=income,
            expense_cents=expense,
        )
        for key, (income, expense) in totals.items()
        if income or expense
    ]
    rows.sort(key=lambda r: (-(r.income_cents + r.expense_cents), r.name))
    return rows


def _bill_status(due: date, today: date) -> tuple[BillStatus, Optional[int]]:
    if (due.year, due.month) != (today.year, today.month):
        return BillStatus.scheduled, None
    diff = (due - today).days
    if diff < 0:
        return BillStatus.overdue, diff
    if diff == 0:
        return BillStatus.due_today, 0
    return BillStatus.upcoming, diff


def upcoming_bills(
    snapshot: Snapshot, year: int, month: int, today: Optional[date] = None
) -> UpcomingBills:
    """Fixed expenses active in the month plus the parcels falling due in it."""
    today = today or local_today()
    index = VariationIndex(snapshot.variations)
    target = month_start(year, month)
    last_day = days_in_month(year, month)
    bills: list[Bill] = []

    for item in snapshot.fixed_items:
        if item.kind != TransactionKind.expense or not is_active_in_month(item, target):
            continue
        due = date(year, month, min(item.day, last_day))
        status, days_until = _bill_status(due, today)
        bills.append(
            Bill(
                id=item.id,
                source=EventSource.fixed,
                description=item.description,
                amount_cents=index.resolve(
                    item.id, item.kind, year, month - 1, item.amount_cents
                ),
                due_date=due,
                status=status,
                days_until=days_until,
            )
        )

    for txn in snapshot.transactions:
        if not txn.is_installment:
            continue
        due = to_local_date(txn.occurred_at)
        if (due.year, due.month) != (year, month):
            continue
        status, days_until = _bill_status(due, today)
        bills.append(
            Bill(
                id=txn.id,
                source=EventSource.installment,
                description=txn.description,
                amount_cents=txn.amount_cents,
                due_date=due,
                status=status,
                days_until=days_until,
                installment=txn.installment,
            )
        )

    bills.sort(key=lambda b: (b.due_date, b.description))
    return UpcomingBills(
        year=year,
        month=month,
        bills=tuple(bills),
        total_cents=sum(b.amount_cents for b in bills),
    )


def weekly_expense_total(
    snapshot: Snapshot, day: date, week_starts_on: Optional[int] = None
) -> int:
    """Spending recorded as transactions (one-off and parcels) in ``day``'s week."""
    start = start_of_week(day, week_starts_on)
    end = end_of_week(day, week_starts_on)
    return sum(
        txn.amount_cents
        for txn in snapshot.transactions
        if txn.kind == TransactionKind.expense
        and start <= to_local_date(txn.occurred_at) <= end
    )
