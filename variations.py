from typing import Iterable, Optional

from domain import Identifier, MonthlyVariation, TransactionKind

VariationKey = tuple[Identifier, TransactionKind, int, int]


def variation_key(
    item_id: Identifier, kind: TransactionKind, year: int, month: int
) -> VariationKey:
    return (item_id, TransactionKind(kind), year, month)


def find_variation(
    item_id: Identifier,
    kind: TransactionKind,
    year: int,
    month: int,
    variations: Iterable[MonthlyVariation],
) -> Optional[MonthlyVariation]:
    kind = TransactionKind(kind)
    for variation in variations:
        if (
            variation.fixed_item_id == item_id
            and variation.kind == kind
            and variation.year == year
            and variation.month == month
        ):
            return variation
    return None


def resolve_amount(
    item_id: Identifier,
    kind: TransactionKind,
    year: int,
    month: int,
    default_cents: int,
    variations: Iterable[MonthlyVariation],
) -> int:
    """Effective amount of a fixed item for one month.

    ``month`` is zero-based (0 = January), matching ``MonthlyVariation.month``.
    Returns the override when one exists for the exact (item, kind, year,
    month), otherwise ``default_cents``.
    """
    variation = find_variation(item_id, kind, year, month, variations)
    return variation.amount_cents if variation else default_cents


def collapses_to_default(amount_cents: int, default_cents: int) -> bool:
    """An override equal to the default is stored as no override at all."""
    return amount_cents == default_cents


class VariationIndex:
    """Composite-key lookup over a variation set, same answers as ``resolve_amount``."""

    def __init__(self, variations: Iterable[MonthlyVariation]) -> None:
        self._by_key: dict[VariationKey, MonthlyVariation] = {}
        for variation in variations:
            key = variation_key(
                variation.fixed_item_id, variation.kind, variation.year, variation.month
            )
            # First match wins, like the linear scan.
            self._by_key.setdefault(key, variation)

    def __len__(self) -> int:
        return len(self._by_key)

    def get(
        self, item_id: Identifier, kind: TransactionKind, year: int, month: int
    ) -> Optional[MonthlyVariation]:
        return self._by_key.get(variation_key(item_id, kind, year, month))

    def resolve(
        self,
        item_id: Identifier,
        kind: TransactionKind,
        year: int,
        month: int,
        default_cents: int,
    ) -> int:
        variation = self.get(item_id, kind, year, month)
        return variation.amount_cents if variation else default_cents
