from domain import MonthlyVariation, TransactionKind
from variations import VariationIndex, collapses_to_default, resolve_amount

RENT_OVERRIDE = MonthlyVariation(
    id=1,
    fixed_item_id=7,
    kind=TransactionKind.expense,
    year=2024,
    month=5,
    amount_cents=135_000,
)


def test_override_applies_only_to_its_month() -> None:
    variations = [RENT_OVERRIDE]
    assert resolve_amount(7, TransactionKind.expense, 2024, 5, 120_000, variations) == 135_000
    assert resolve_amount(7, TransactionKind.expense, 2024, 4, 120_000, variations) == 120_000
    assert resolve_amount(7, TransactionKind.expense, 2025, 5, 120_000, variations) == 120_000


def test_no_variation_returns_default_exactly() -> None:
    assert resolve_amount(7, TransactionKind.expense, 2024, 5, 120_000, []) == 120_000


def test_kind_and_item_must_both_match() -> None:
    variations = [RENT_OVERRIDE]
    assert resolve_amount(7, TransactionKind.income, 2024, 5, 120_000, variations) == 120_000
    assert resolve_amount(8, TransactionKind.expense, 2024, 5, 120_000, variations) == 120_000
    assert resolve_amount(7, "expense", 2024, 5, 120_000, variations) == 135_000


def test_index_matches_linear_lookup() -> None:
    variations = [
        RENT_OVERRIDE,
        MonthlyVariation(
            id=2,
            fixed_item_id=7,
            kind=TransactionKind.expense,
            year=2024,
            month=6,
            amount_cents=0,
        ),
    ]
    index = VariationIndex(variations)
    assert len(index) == 2
    for month in range(12):
        assert index.resolve(7, TransactionKind.expense, 2024, month, 120_000) == (
            resolve_amount(7, TransactionKind.expense, 2024, month, 120_000, variations)
        )
    assert index.resolve(7, TransactionKind.expense, 2024, 6, 120_000) == 0


def test_override_equal_to_default_collapses() -> None:
    assert collapses_to_default(120_000, 120_000)
    assert not collapses_to_default(120_001, 120_000)
