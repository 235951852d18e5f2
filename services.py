from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

import domain
from dates import local_today, to_local_date, to_utc_datetime
from domain import TransactionKind
from installments import generate_parcels
from models import (
    Category,
    FixedItem,
    Installment,
    InstallmentPurchase,
    MonthlyVariation,
    VariableTransaction,
)
from schemas import (
    CategoryIn,
    FixedItemIn,
    InstallmentPurchaseIn,
    MonthlyVariationIn,
    VariableTransactionIn,
)
from variations import collapses_to_default

logger = logging.getLogger(__name__)


def _db_instant(local_date: date) -> datetime:
    """Calendar date -> naive UTC datetime as stored in the database."""
    return to_utc_datetime(local_date).replace(tzinfo=None)


def _check_category(
    session: Session, category_id: Optional[int], kind: TransactionKind
) -> None:
    if category_id is None:
        return
    category = session.get(Category, category_id)
    if not category:
        raise ValueError("Category not found")
    if category.kind != kind:
        raise ValueError("Category type mismatch")


class CategoryService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self, kind: Optional[TransactionKind] = None) -> list[Category]:
        stmt = select(Category).order_by(Category.kind, Category.name)
        if kind:
            stmt = stmt.where(Category.kind == kind)
        return self.session.scalars(stmt).all()

    def get(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if not category:
            raise ValueError("Category not found")
        return category

    def _ensure_unique(self, data: CategoryIn, exclude_id: Optional[int] = None) -> None:
        stmt = select(Category).where(
            Category.kind == data.kind,
            func.lower(Category.name) == data.name.strip().lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        if self.session.scalar(stmt):
            raise ValueError("Category with this name already exists")

    def create(self, data: CategoryIn) -> Category:
        self._ensure_unique(data)
        category = Category(
            name=data.name.strip(),
            kind=data.kind,
            color=data.color,
            description=data.description,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def _in_use(self, category_id: int) -> bool:
        for model in (VariableTransaction, FixedItem, InstallmentPurchase):
            stmt = select(model.id).where(model.category_id == category_id).limit(1)
            if self.session.scalar(stmt) is not None:
                return True
        return False

    def update(self, category_id: int, data: CategoryIn) -> Category:
        category = self.get(category_id)
        self._ensure_unique(data, exclude_id=category_id)
        if data.kind != category.kind and self._in_use(category_id):
            raise ValueError("Category is in use; its type cannot change")
        category.name = data.name.strip()
        category.kind = data.kind
        category.color = data.color
        category.description = data.description
        self.session.commit()
        self.session.refresh(category)
        return category

    def delete(self, category_id: int) -> None:
        """Delete a category; anything that referenced it becomes uncategorized."""
        category = self.get(category_id)
        for model in (VariableTransaction, FixedItem, InstallmentPurchase):
            self.session.execute(
                update(model)
                .where(model.category_id == category_id)
                .values(category_id=None)
            )
        self.session.delete(category)
        self.session.commit()
        logger.info(f"category_deleted: id={category_id}")


class VariableTransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[VariableTransaction]:
        stmt = select(VariableTransaction).order_by(
            VariableTransaction.occurred_at.desc(), VariableTransaction.id.desc()
        )
        return self.session.scalars(stmt).all()

    def get(self, transaction_id: int) -> VariableTransaction:
        txn = self.session.get(VariableTransaction, transaction_id)
        if not txn:
            raise ValueError("Transaction not found")
        return txn

    def create(self, data: VariableTransactionIn) -> VariableTransaction:
        _check_category(self.session, data.category_id, data.kind)
        txn = VariableTransaction(
            kind=data.kind,
            description=data.description,
            amount_cents=data.amount_cents,
            occurred_at=_db_instant(data.date),
            category_id=data.category_id,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def update(self, transaction_id: int, data: VariableTransactionIn) -> VariableTransaction:
        txn = self.get(transaction_id)
        _check_category(self.session, data.category_id, data.kind)
        txn.kind = data.kind
        txn.description = data.description
        txn.amount_cents = data.amount_cents
        txn.occurred_at = _db_instant(data.date)
        txn.category_id = data.category_id
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()


class FixedItemService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self, kind: Optional[TransactionKind] = None) -> list[FixedItem]:
        stmt = select(FixedItem).order_by(FixedItem.day, FixedItem.id)
        if kind:
            stmt = stmt.where(FixedItem.kind == kind)
        return self.session.scalars(stmt).all()

    def get(self, item_id: int) -> FixedItem:
        item = self.session.get(FixedItem, item_id)
        if not item:
            raise ValueError("Fixed item not found")
        return item

    def create(self, data: FixedItemIn) -> FixedItem:
        _check_category(self.session, data.category_id, data.kind)
        item = FixedItem(
            kind=data.kind,
            description=data.description,
            amount_cents=data.amount_cents,
            day=data.day,
            start_at=_db_instant(data.start_date),
            end_at=_db_instant(data.end_date) if data.end_date else None,
            category_id=data.category_id,
        )
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def update(self, item_id: int, data: FixedItemIn) -> FixedItem:
        item = self.get(item_id)
        if data.kind != item.kind:
            raise ValueError("Cannot change the type of a fixed item")
        _check_category(self.session, data.category_id, data.kind)
        item.description = data.description
        item.amount_cents = data.amount_cents
        item.day = data.day
        item.start_at = _db_instant(data.start_date)
        item.end_at = _db_instant(data.end_date) if data.end_date else None
        item.category_id = data.category_id
        collapsed = [v for v in item.variations if v.amount_cents == item.amount_cents]
        for variation in collapsed:
            item.variations.remove(variation)
        self.session.commit()
        self.session.refresh(item)
        if collapsed:
            logger.info(f"variation_collapsed: item={item.id} count={len(collapsed)}")
        return item

    def archive(self, item_id: int, today: Optional[date] = None) -> FixedItem:
        """Close the item's active period at ``today`` while keeping its history."""
        item = self.get(item_id)
        today = today or local_today()
        if today < to_local_date(item.start_at):
            raise ValueError("Fixed item has not started yet; delete it instead")
        if item.end_at is not None and to_local_date(item.end_at) <= today:
            raise ValueError("Fixed item is already archived")
        item.end_at = _db_instant(today)
        self.session.commit()
        self.session.refresh(item)
        logger.info(f"fixed_item_archived: id={item_id} end={today.isoformat()}")
        return item

    def delete(self, item_id: int) -> None:
        item = self.get(item_id)
        self.session.delete(item)
        self.session.commit()
        logger.info(f"fixed_item_deleted: id={item_id}")


class MonthlyVariationService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self, fixed_item_id: Optional[int] = None) -> list[MonthlyVariation]:
        stmt = select(MonthlyVariation).order_by(
            MonthlyVariation.year, MonthlyVariation.month, MonthlyVariation.id
        )
        if fixed_item_id is not None:
            stmt = stmt.where(MonthlyVariation.fixed_item_id == fixed_item_id)
        return self.session.scalars(stmt).all()

    def _find(self, data: MonthlyVariationIn) -> Optional[MonthlyVariation]:
        return self.session.scalar(
            select(MonthlyVariation).where(
                MonthlyVariation.fixed_item_id == data.fixed_item_id,
                MonthlyVariation.kind == data.kind,
                MonthlyVariation.year == data.year,
                MonthlyVariation.month == data.month,
            )
        )

    def set_amount(self, data: MonthlyVariationIn) -> Optional[MonthlyVariation]:
        """Upsert the override for one (item, kind, year, month).

        An amount equal to the item's default removes the override instead of
        storing it; returns ``None`` in that case.
        """
        item = self.session.get(FixedItem, data.fixed_item_id)
        if not item:
            raise ValueError("Fixed item not found")
        if item.kind != data.kind:
            raise ValueError("Variation type does not match fixed item")

        existing = self._find(data)
        if collapses_to_default(data.amount_cents, item.amount_cents):
            if existing:
                self.session.delete(existing)
                self.session.commit()
                logger.info(
                    f"variation_collapsed: item={item.id} year={data.year} month={data.month}"
                )
            return None

        if existing:
            existing.amount_cents = data.amount_cents
            self.session.commit()
            self.session.refresh(existing)
            return existing

        variation = MonthlyVariation(
            fixed_item_id=data.fixed_item_id,
            kind=data.kind,
            year=data.year,
            month=data.month,
            amount_cents=data.amount_cents,
        )
        self.session.add(variation)
        self.session.commit()
        self.session.refresh(variation)
        return variation

    def delete(self, variation_id: int) -> None:
        variation = self.session.get(MonthlyVariation, variation_id)
        if not variation:
            raise ValueError("Variation not found")
        self.session.delete(variation)
        self.session.commit()


class InstallmentService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[InstallmentPurchase]:
        stmt = (
            select(InstallmentPurchase)
            .options(selectinload(InstallmentPurchase.installments))
            .order_by(InstallmentPurchase.anchor_at.desc(), InstallmentPurchase.id.desc())
        )
        return self.session.scalars(stmt).all()

    def get(self, purchase_id: int) -> InstallmentPurchase:
        purchase = self.session.get(InstallmentPurchase, purchase_id)
        if not purchase:
            raise ValueError("Installment purchase not found")
        return purchase

    def create(self, data: InstallmentPurchaseIn) -> InstallmentPurchase:
        _check_category(self.session, data.category_id, TransactionKind.expense)
        parcels = generate_parcels(
            data.total_cents,
            data.installment_count,
            data.description,
            data.anchor_date,
            data.category_id,
        )
        purchase = InstallmentPurchase(
            description=data.description,
            total_cents=data.total_cents,
            anchor_at=_db_instant(data.anchor_date),
            installment_count=data.installment_count,
            category_id=data.category_id,
            installments=[
                Installment(
                    number=parcel.current,
                    amount_cents=parcel.amount_cents,
                    due_at=parcel.occurred_at.replace(tzinfo=None),
                )
                for parcel in parcels
            ],
        )
        self.session.add(purchase)
        self.session.commit()
        self.session.refresh(purchase)
        logger.info(
            f"installment_created: purchase_id={purchase.id} parcels={len(parcels)} "
            f"total_cents={data.total_cents}"
        )
        return purchase

    def delete(self, purchase_id: int) -> None:
        purchase = self.get(purchase_id)
        self.session.delete(purchase)
        self.session.commit()
        logger.info(f"installment_deleted: purchase_id={purchase_id}")

    def delete_parcel(self, installment_id: int) -> int:
        """Deleting any parcel removes its whole purchase; returns the purchase id."""
        installment = self.session.get(Installment, installment_id)
        if not installment:
            raise ValueError("Installment not found")
        purchase_id = installment.purchase_id
        self.delete(purchase_id)
        return purchase_id


class SnapshotService:
    """Loads the current database state as an immutable engine snapshot."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def load(self) -> domain.Snapshot:
        categories = [
            domain.Category(
                id=c.id,
                name=c.name,
                kind=c.kind,
                color=c.color,
                description=c.description,
            )
            for c in self.session.scalars(select(Category).order_by(Category.id))
        ]
        fixed_items = [
            domain.FixedItem(
                id=f.id,
                kind=f.kind,
                description=f.description,
                amount_cents=f.amount_cents,
                day=f.day,
                start_at=f.start_at,
                end_at=f.end_at,
                category_id=f.category_id,
            )
            for f in self.session.scalars(select(FixedItem).order_by(FixedItem.id))
        ]
        variations = [
            domain.MonthlyVariation(
                id=v.id,
                fixed_item_id=v.fixed_item_id,
                kind=v.kind,
                year=v.year,
                month=v.month,
                amount_cents=v.amount_cents,
            )
            for v in self.session.scalars(
                select(MonthlyVariation).order_by(MonthlyVariation.id)
            )
        ]
        transactions: list[domain.Transaction] = [
            domain.VariableTransaction(
                id=t.id,
                kind=t.kind,
                description=t.description,
                amount_cents=t.amount_cents,
                occurred_at=t.occurred_at,
                category_id=t.category_id,
            )
            for t in self.session.scalars(
                select(VariableTransaction).order_by(
                    VariableTransaction.occurred_at, VariableTransaction.id
                )
            )
        ]
        for purchase in self.session.scalars(
            select(InstallmentPurchase)
            .options(selectinload(InstallmentPurchase.installments))
            .order_by(InstallmentPurchase.id)
        ):
            transactions.extend(self._purchase(purchase).parcels)
        return domain.Snapshot(
            categories=tuple(categories),
            fixed_items=tuple(fixed_items),
            variations=tuple(variations),
            transactions=tuple(transactions),
        )

    @staticmethod
    def _purchase(purchase: InstallmentPurchase) -> domain.InstallmentPurchase:
        return domain.InstallmentPurchase(
            id=purchase.id,
            description=purchase.description,
            total_cents=purchase.total_cents,
            anchor_at=purchase.anchor_at,
            count=purchase.installment_count,
            category_id=purchase.category_id,
            parcels=[
                domain.Parcel(
                    id=i.id,
                    description=purchase.description,
                    amount_cents=i.amount_cents,
                    occurred_at=i.due_at,
                    category_id=purchase.category_id,
                    current=i.number,
                    total=purchase.installment_count,
                    purchase_id=purchase.id,
                )
                for i in purchase.installments
            ],
        )
