"""Immutable snapshot types read by the engine.

The repository layer builds these from database rows; ``Snapshot.from_payload``
builds them from the JSON shape used by clients. Construction validates the
invariants, so the engine never sees an invalid item.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from functools import cached_property
from typing import Any, Mapping, Optional, Union

from dates import Instant, parse_instant, to_local_date

Identifier = Union[int, str]


class TransactionKind(str, Enum):
    income = "income"
    expense = "expense"


def to_cents(value: Any) -> int:
    """Convert a decimal amount (``12.34``, ``"12.34"``) to integer cents."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _set(obj: object, name: str, value: object) -> None:
    object.__setattr__(obj, name, value)


@dataclass(frozen=True)
class Category:
    id: Identifier
    name: str
    kind: TransactionKind
    color: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class InstallmentInfo:
    current: int
    total: int


@dataclass(frozen=True)
class VariableTransaction:
    id: Identifier
    kind: TransactionKind
    description: str
    amount_cents: int
    occurred_at: datetime
    category_id: Optional[Identifier] = None

    is_installment = False

    def __post_init__(self) -> None:
        _set(self, "kind", TransactionKind(self.kind))
        _set(self, "occurred_at", parse_instant(self.occurred_at))
        if self.amount_cents <= 0:
            raise ValueError("Amount must be positive")

    @property
    def installment(self) -> Optional[InstallmentInfo]:
        return None


@dataclass(frozen=True)
class Parcel:
    description: str
    amount_cents: int
    occurred_at: datetime
    category_id: Optional[Identifier]
    current: int
    total: int
    purchase_id: Optional[Identifier] = None
    id: Optional[Identifier] = None

    kind = TransactionKind.expense
    is_installment = True

    def __post_init__(self) -> None:
        _set(self, "occurred_at", parse_instant(self.occurred_at))
        if self.total < 1 or not 1 <= self.current <= self.total:
            raise ValueError(
                f"Invalid installment position {self.current}/{self.total}"
            )
        if self.amount_cents < 0:
            raise ValueError("Amount must not be negative")

    @property
    def installment(self) -> InstallmentInfo:
        return InstallmentInfo(current=self.current, total=self.total)


Transaction = Union[VariableTransaction, Parcel]


@dataclass(frozen=True)
class FixedItem:
    id: Identifier
    kind: TransactionKind
    description: str
    amount_cents: int
    day: int
    start_at: datetime
    end_at: Optional[datetime] = None
    category_id: Optional[Identifier] = None

    def __post_init__(self) -> None:
        _set(self, "kind", TransactionKind(self.kind))
        _set(self, "start_at", parse_instant(self.start_at))
        if self.end_at is not None:
            _set(self, "end_at", parse_instant(self.end_at))
        if self.amount_cents <= 0:
            raise ValueError("Amount must be positive")
        if not 1 <= self.day <= 31:
            raise ValueError("Day must be between 1 and 31")
        if self.end_at is not None and self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")

    @property
    def start_date(self) -> date:
        return to_local_date(self.start_at)

    @property
    def end_date(self) -> Optional[date]:
        if self.end_at is None:
            return None
        return to_local_date(self.end_at)


@dataclass(frozen=True)
class MonthlyVariation:
    id: Identifier
    fixed_item_id: Identifier
    kind: TransactionKind
    year: int
    month: int  # zero-based, 0 = January
    amount_cents: int

    def __post_init__(self) -> None:
        _set(self, "kind", TransactionKind(self.kind))
        if not 0 <= self.month <= 11:
            raise ValueError("Month must be between 0 and 11")
        if self.amount_cents < 0:
            raise ValueError("Amount must not be negative")


@dataclass(frozen=True)
class InstallmentPurchase:
    id: Identifier
    description: str
    total_cents: int
    anchor_at: datetime
    count: int
    category_id: Optional[Identifier] = None
    parcels: tuple[Parcel, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "anchor_at", parse_instant(self.anchor_at))
        _set(self, "parcels", tuple(self.parcels))
        if self.count < 1:
            raise ValueError("Installment count must be at least 1")
        if self.total_cents <= 0:
            raise ValueError("Total amount must be positive")
        if self.parcels:
            if len(self.parcels) != self.count:
                raise ValueError(
                    f"Purchase {self.id!r} has {len(self.parcels)} parcels, expected {self.count}"
                )
            if sum(p.amount_cents for p in self.parcels) != self.total_cents:
                raise ValueError(f"Parcels of purchase {self.id!r} do not add up to its total")


@dataclass(frozen=True)
class Snapshot:
    categories: tuple[Category, ...] = ()
    fixed_items: tuple[FixedItem, ...] = ()
    variations: tuple[MonthlyVariation, ...] = ()
    transactions: tuple[Transaction, ...] = ()

    def __post_init__(self) -> None:
        for name in ("categories", "fixed_items", "variations", "transactions"):
            _set(self, name, tuple(getattr(self, name)))

    @cached_property
    def categories_by_id(self) -> dict[Identifier, Category]:
        return {c.id: c for c in self.categories}

    def category(self, category_id: Optional[Identifier]) -> Optional[Category]:
        if category_id is None:
            return None
        return self.categories_by_id.get(category_id)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Snapshot":
        """Build a snapshot from the client JSON shape (camelCase, decimal amounts).

        Malformed dates or amounts raise ``ValueError`` naming the offending
        record.
        """
        categories = [_category_from_payload(c) for c in payload.get("categories", [])]
        fixed: list[FixedItem] = []
        for key, kind in (
            ("fixedIncomes", TransactionKind.income),
            ("fixedExpenses", TransactionKind.expense),
            ("fixedItems", None),
        ):
            fixed.extend(
                _fixed_from_payload(raw, kind) for raw in payload.get(key, [])
            )
        variations = [
            _variation_from_payload(v) for v in payload.get("monthlyVariations", [])
        ]
        transactions = [
            _transaction_from_payload(t) for t in payload.get("transactions", [])
        ]
        return cls(
            categories=tuple(categories),
            fixed_items=tuple(fixed),
            variations=tuple(variations),
            transactions=tuple(transactions),
        )


def _kind_from(raw: Mapping[str, Any], default: Optional[TransactionKind]) -> TransactionKind:
    value = raw.get("kind", raw.get("type"))
    if value is None:
        if default is None:
            raise ValueError(f"Missing kind for record {raw.get('id')!r}")
        return default
    try:
        return TransactionKind(str(value).lower())
    except ValueError as exc:
        raise ValueError(f"Invalid kind {value!r} for record {raw.get('id')!r}") from exc


def _required(raw: Mapping[str, Any], key: str) -> Any:
    if raw.get(key) is None:
        raise ValueError(f"Missing {key} for record {raw.get('id')!r}")
    return raw[key]


def _category_from_payload(raw: Mapping[str, Any]) -> Category:
    return Category(
        id=_required(raw, "id"),
        name=_required(raw, "name"),
        kind=_kind_from(raw, None),
        color=raw.get("color"),
        description=raw.get("description"),
    )


def _fixed_from_payload(
    raw: Mapping[str, Any], kind: Optional[TransactionKind]
) -> FixedItem:
    return FixedItem(
        id=_required(raw, "id"),
        kind=_kind_from(raw, kind),
        description=raw.get("description", ""),
        amount_cents=to_cents(_required(raw, "amount")),
        day=int(_required(raw, "day")),
        start_at=_instant(raw, "startDate"),
        end_at=_instant(raw, "endDate") if raw.get("endDate") else None,
        category_id=raw.get("categoryId"),
    )


def _variation_from_payload(raw: Mapping[str, Any]) -> MonthlyVariation:
    return MonthlyVariation(
        id=_required(raw, "id"),
        fixed_item_id=_required(raw, "fixedItemId"),
        kind=_kind_from(raw, None),
        year=int(_required(raw, "year")),
        month=int(_required(raw, "month")),
        amount_cents=to_cents(_required(raw, "amount")),
    )


def _transaction_from_payload(raw: Mapping[str, Any]) -> Transaction:
    info = raw.get("installmentInfo")
    if raw.get("isInstallment") and info:
        return Parcel(
            id=raw.get("id"),
            description=raw.get("description", ""),
            amount_cents=to_cents(_required(raw, "amount")),
            occurred_at=_instant(raw, "date"),
            category_id=raw.get("categoryId"),
            current=int(info["current"]),
            total=int(info["total"]),
            purchase_id=raw.get("idCompraParcelada", info.get("idCompraParcelada")),
        )
    # Legacy payloads carry no kind: only expenses have the isInstallment key.
    legacy_kind = (
        TransactionKind.expense if "isInstallment" in raw else TransactionKind.income
    )
    return VariableTransaction(
        id=_required(raw, "id"),
        kind=_kind_from(raw, legacy_kind),
        description=raw.get("description", ""),
        amount_cents=to_cents(_required(raw, "amount")),
        occurred_at=_instant(raw, "date"),
        category_id=raw.get("categoryId"),
    )


def _instant(raw: Mapping[str, Any], key: str) -> datetime:
    value: Instant = _required(raw, key)
    try:
        return parse_instant(value)
    except ValueError as exc:
        raise ValueError(f"Invalid {key} for record {raw.get('id')!r}: {value!r}") from exc
