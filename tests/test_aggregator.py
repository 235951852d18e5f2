from datetime import date

import pytest

from aggregator import (
    BillStatus,
    EventSource,
    balance_history,
    category_breakdown,
    events_in_range,
    events_in_week,
    events_on_date,
    month_summary,
    upcoming_bills,
    weekly_expense_total,
)
from config import get_settings
from dates import SUNDAY, to_utc_datetime
from domain import (
    Category,
    FixedItem,
    MonthlyVariation,
    Snapshot,
    TransactionKind,
    VariableTransaction,
)
from installments import generate_parcels


def build_snapshot() -> Snapshot:
    categories = [
        Category(id=1, name="Housing", kind=TransactionKind.expense, color="#ef4444"),
        Category(id=2, name="Salary", kind=TransactionKind.income, color="#22c55e"),
        Category(id=3, name="Shopping", kind=TransactionKind.expense, color="#3b82f6"),
    ]
    fixed_items = [
        FixedItem(
            id=1,
            kind=TransactionKind.expense,
            description="Rent",
            amount_cents=120_000,
            day=10,
            start_at=to_utc_datetime(date(2023, 1, 10)),
            category_id=1,
        ),
        FixedItem(
            id=2,
            kind=TransactionKind.income,
            description="Paycheck",
            amount_cents=500_000,
            day=5,
            start_at=to_utc_datetime(date(2023, 1, 5)),
            category_id=2,
        ),
    ]
    variations = [
        MonthlyVariation(
            id=1,
            fixed_item_id=1,
            kind=TransactionKind.expense,
            year=2024,
            month=5,
            amount_cents=135_000,
        )
    ]
    transactions = [
        VariableTransaction(
            id=10,
            kind=TransactionKind.expense,
            description="Groceries",
            amount_cents=4_500,
            occurred_at=to_utc_datetime(date(2024, 6, 10)),
            category_id=3,
        ),
        VariableTransaction(
            id=11,
            kind=TransactionKind.income,
            description="Freelance",
            amount_cents=20_000,
            occurred_at=to_utc_datetime(date(2024, 6, 15)),
            category_id=99,
        ),
    ]
    transactions.extend(generate_parcels(30_000, 3, "TV", date(2024, 5, 20), 3, purchase_id=7))
    return Snapshot(
        categories=categories,
        fixed_items=fixed_items,
        variations=variations,
        transactions=transactions,
    )


def test_day_lists_transactions_then_fixed_items_with_resolved_amount() -> None:
    events = events_on_date(build_snapshot(), date(2024, 6, 10))
    assert [e.description for e in events] == ["Groceries", "Rent"]

    groceries, rent = events
    assert groceries.source == EventSource.variable
    assert groceries.category == "Shopping"
    assert groceries.signed_cents == -4_500

    assert rent.source == EventSource.fixed
    assert rent.is_fixed
    assert rent.amount_cents == 135_000
    assert rent.has_variation
    assert rent.standard_amount_cents == 120_000
    assert rent.category_color == "#ef4444"


def test_fixed_item_without_override_uses_default() -> None:
    (rent,) = events_on_date(build_snapshot(), date(2024, 5, 10))
    assert rent.amount_cents == 120_000
    assert not rent.has_variation


def test_unknown_category_resolves_to_placeholder() -> None:
    (freelance,) = events_on_date(build_snapshot(), date(2024, 6, 15))
    settings = get_settings()
    assert freelance.category == settings.uncategorized_label
    assert freelance.category_color == settings.uncategorized_color
    assert freelance.category_id is None
    assert not freelance.is_expense


def test_quiet_day_is_empty() -> None:
    assert events_on_date(build_snapshot(), date(2024, 6, 11)) == []


def test_parcel_events_carry_position() -> None:
    (parcel,) = events_on_date(build_snapshot(), date(2024, 6, 20))
    assert parcel.source == EventSource.installment
    assert parcel.installment.current == 2
    assert parcel.installment.total == 3
    assert parcel.amount_cents == 10_000


def test_range_totals_match_daily_buckets() -> None:
    result = events_in_range(build_snapshot(), date(2024, 6, 1), date(2024, 6, 30))
    assert len(result.days) == 30
    assert result.income_cents == 500_000 + 20_000
    assert result.expense_cents == 4_500 + 135_000 + 10_000
    assert result.net_cents == result.income_cents - result.expense_cents
    assert sum(d.net_cents for d in result.days) == result.net_cents
    assert len(result.events) == 5


def test_inverted_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        events_in_range(build_snapshot(), date(2024, 6, 30), date(2024, 6, 1))


def test_week_view_spans_seven_days() -> None:
    result = events_in_week(build_snapshot(), date(2024, 6, 12), SUNDAY)
    assert result.start == date(2024, 6, 9)
    assert result.end == date(2024, 6, 15)
    assert [e.description for e in result.events] == ["Groceries", "Rent", "Freelance"]
    assert result.expense_cents == 139_500


def test_month_summary_splits_committed_spending() -> None:
    summary = month_summary(build_snapshot(), 2024, 6)
    assert summary.variable_income_cents == 20_000
    assert summary.fixed_income_cents == 500_000
    assert summary.variable_expense_cents == 4_500
    assert summary.installment_expense_cents == 10_000
    assert summary.fixed_expense_cents == 135_000
    assert summary.income_cents == 520_000
    assert summary.expense_cents == 149_500
    assert summary.committed_expense_cents == 145_000
    assert summary.balance_cents == 370_500


def test_month_summary_before_start_has_no_fixed_items() -> None:
    summary = month_summary(build_snapshot(), 2022, 12)
    assert summary.income_cents == 0
    assert summary.expense_cents == 0


def test_balance_history_covers_twelve_months_oldest_first() -> None:
    series = balance_history(build_snapshot(), 2024, 3)
    assert len(series) == 12
    assert [m.label for m in series][:2] == ["2023-04", "2023-05"]
    assert series[-1].label == "2024-03"
    assert len({m.label for m in series}) == 12
    assert all(m.net_cents == 380_000 for m in series)


def test_balance_history_uses_resolved_amounts() -> None:
    series = balance_history(build_snapshot(), 2024, 7, months=3)
    assert [m.label for m in series] == ["2024-05", "2024-06", "2024-07"]
    assert [m.net_cents for m in series] == [370_000, 370_500, 370_000]
    with pytest.raises(ValueError):
        balance_history(build_snapshot(), 2024, 7, months=0)


def test_category_breakdown_orders_by_total() -> None:
    rows = category_breakdown(build_snapshot(), 2024, 6)
    assert [r.name for r in rows] == [
        "Salary",
        "Housing",
        get_settings().uncategorized_label,
        "Shopping",
    ]
    shopping = rows[-1]
    assert shopping.expense_cents == 14_500
    assert shopping.income_cents == 0


def test_category_breakdown_filters_by_kind() -> None:
    rows = category_breakdown(build_snapshot(), 2024, 6, TransactionKind.expense)
    assert {r.name for r in rows} == {"Housing", "Shopping"}


def test_upcoming_bills_in_current_month() -> None:
    bills = upcoming_bills(build_snapshot(), 2024, 6, today=date(2024, 6, 12))
    assert [b.description for b in bills.bills] == ["Rent", "TV"]
    rent, tv = bills.bills
    assert rent.status == BillStatus.overdue
    assert rent.days_until == -2
    assert rent.amount_cents == 135_000
    assert tv.status == BillStatus.upcoming
    assert tv.days_until == 8
    assert tv.installment.current == 2
    assert bills.total_cents == 145_000


def test_bills_outside_current_month_are_scheduled() -> None:
    bills = upcoming_bills(build_snapshot(), 2024, 7, today=date(2024, 6, 12))
    assert {b.status for b in bills.bills} == {BillStatus.scheduled}
    assert all(b.days_until is None for b in bills.bills)
    assert bills.total_cents == 120_000 + 10_000


def test_fixed_bill_due_day_clamps_in_short_month() -> None:
    snapshot = Snapshot(
        fixed_items=[
            FixedItem(
                id=5,
                kind=TransactionKind.expense,
                description="Gym",
                amount_cents=9_900,
                day=31,
                start_at=to_utc_datetime(date(2024, 1, 1)),
            )
        ]
    )
    (gym,) = upcoming_bills(snapshot, 2024, 2, today=date(2024, 2, 29)).bills
    assert gym.due_date == date(2024, 2, 29)
    assert gym.status == BillStatus.due_today


def test_weekly_expense_total_counts_transactions_in_week() -> None:
    snapshot = build_snapshot()
    assert weekly_expense_total(snapshot, date(2024, 6, 12), SUNDAY) == 4_500
    assert weekly_expense_total(snapshot, date(2024, 6, 20), SUNDAY) == 10_000


def test_orphan_variation_is_ignored() -> None:
    snapshot = build_snapshot()
    with_orphan = Snapshot(
        categories=snapshot.categories,
        fixed_items=snapshot.fixed_items,
        variations=snapshot.variations
        + (
            MonthlyVariation(
                id=2,
                fixed_item_id=999,
                kind=TransactionKind.expense,
                year=2024,
                month=5,
                amount_cents=1,
            ),
        ),
        transactions=snapshot.transactions,
    )
    assert month_summary(with_orphan, 2024, 6) == month_summary(snapshot, 2024, 6)


def test_payload_with_legacy_records() -> None:
    snapshot = Snapshot.from_payload(
        {
            "categories": [{"id": "c1", "name": "Housing", "type": "expense"}],
            "fixedExpenses": [
                {
                    "id": "f1",
                    "description": "Rent",
                    "amount": 1200,
                    "day": 10,
                    "startDate": "2023-01-10T12:00:00.000Z",
                    "categoryId": "c1",
                }
            ],
            "monthlyVariations": [
                {
                    "id": "v1",
                    "fixedItemId": "f1",
                    "type": "expense",
                    "year": 2024,
                    "month": 5,
                    "amount": 1350,
                }
            ],
            "transactions": [
                {
                    "id": "t1",
                    "description": "Bonus",
                    "amount": "250.50",
                    "date": "2024-06-03T12:00:00.000Z",
                },
                {
                    "id": "t2",
                    "description": "Lunch",
                    "amount": 12.34,
                    "date": "2024-06-03T12:00:00.000Z",
                    "isInstallment": False,
                },
                {
                    "id": "t3",
                    "description": "Sofa",
                    "amount": 300,
                    "date": "2024-06-18T12:00:00.000Z",
                    "isInstallment": True,
                    "installmentInfo": {"current": 1, "total": 4},
                },
            ],
        }
    )
    summary = month_summary(snapshot, 2024, 6)
    assert summary.fixed_expense_cents == 135_000
    assert summary.variable_income_cents == 25_050
    assert summary.variable_expense_cents == 1_234
    assert summary.installment_expense_cents == 30_000


def test_payload_fails_fast_on_bad_values() -> None:
    base = {"id": "t1", "description": "Lunch", "amount": 10, "date": "2024-06-03"}
    with pytest.raises(ValueError):
        Snapshot.from_payload({"transactions": [{**base, "date": "03/06/2024"}]})
    with pytest.raises(ValueError):
        Snapshot.from_payload({"transactions": [{**base, "amount": "ten"}]})
    with pytest.raises(ValueError):
        Snapshot.from_payload(
            {
                "fixedExpenses": [
                    {
                        "id": "f1",
                        "amount": 10,
                        "day": 32,
                        "startDate": "2024-01-01",
                    }
                ]
            }
        )


def test_fixed_item_rejects_end_before_start() -> None:
    with pytest.raises(ValueError):
        FixedItem(
            id=1,
            kind=TransactionKind.expense,
            description="Rent",
            amount_cents=1,
            day=1,
            start_at=to_utc_datetime(date(2024, 6, 1)),
            end_at=to_utc_datetime(date(2024, 5, 31)),
        )
