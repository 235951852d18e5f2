from datetime import date

import pytest

from dates import to_local_date
from domain import InstallmentPurchase
from installments import generate_parcels, parcel_dates, split_amount


def test_purchase_split_in_three_puts_extra_cents_first() -> None:
    parcels = generate_parcels(350_000, 3, "Notebook", date(2025, 10, 5), 4, purchase_id=9)
    assert [p.amount_cents for p in parcels] == [116_667, 116_667, 116_666]
    assert [to_local_date(p.occurred_at) for p in parcels] == [
        date(2025, 10, 5),
        date(2025, 11, 5),
        date(2025, 12, 5),
    ]
    assert [(p.current, p.total) for p in parcels] == [(1, 3), (2, 3), (3, 3)]
    assert {p.purchase_id for p in parcels} == {9}
    assert all(p.is_installment and p.category_id == 4 for p in parcels)


@pytest.mark.parametrize("total", [1, 99, 100, 101, 12_345, 350_000, 999_999])
def test_parcels_always_sum_to_total(total: int) -> None:
    for count in range(1, 25):
        amounts = split_amount(total, count)
        assert len(amounts) == count
        assert sum(amounts) == total
        assert max(amounts) - min(amounts) <= 1
        assert amounts == sorted(amounts, reverse=True)


def test_parcel_months_advance_one_at_a_time_across_years() -> None:
    dates = parcel_dates(date(2024, 11, 30), 14)
    for earlier, later in zip(dates, dates[1:]):
        months_apart = (later.year * 12 + later.month) - (earlier.year * 12 + earlier.month)
        assert months_apart == 1
    # Short months clamp, then the anchor day comes back.
    assert dates[3] == date(2025, 2, 28)
    assert dates[4] == date(2025, 3, 30)
    assert dates[-1] == date(2025, 12, 30)


def test_anchor_may_be_an_iso_instant() -> None:
    parcels = generate_parcels(10_000, 2, "Phone", "2025-01-31T12:00:00.000Z", None)
    assert [to_local_date(p.occurred_at) for p in parcels] == [
        date(2025, 1, 31),
        date(2025, 2, 28),
    ]


def test_invalid_purchases_are_rejected() -> None:
    with pytest.raises(ValueError):
        split_amount(10_000, 0)
    with pytest.raises(ValueError):
        split_amount(0, 3)
    with pytest.raises(ValueError):
        generate_parcels(10_000, 2, "Phone", "not-a-date", None)


def test_purchase_holds_parcels_that_add_up() -> None:
    parcels = generate_parcels(350_000, 3, "Notebook", date(2025, 10, 5), None, purchase_id=9)
    purchase = InstallmentPurchase(
        id=9,
        description="Notebook",
        total_cents=350_000,
        anchor_at="2025-10-05",
        count=3,
        parcels=parcels,
    )
    assert sum(p.amount_cents for p in purchase.parcels) == purchase.total_cents
    assert to_local_date(purchase.anchor_at) == date(2025, 10, 5)

    with pytest.raises(ValueError):
        InstallmentPurchase(
            id=9,
            description="Notebook",
            total_cents=350_000,
            anchor_at="2025-10-05",
            count=3,
            parcels=parcels[:2],
        )
    with pytest.raises(ValueError):
        InstallmentPurchase(
            id=9,
            description="Notebook",
            total_cents=350_001,
            anchor_at="2025-10-05",
            count=3,
            parcels=parcels,
        )
