from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from domain import TransactionKind

KIND_ENUM = SAEnum(TransactionKind, name="transactionkind")


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[TransactionKind] = mapped_column(KIND_ENUM, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(7))
    description: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("kind", "name", name="uq_category_kind_name"),
    )


class VariableTransaction(Base, TimestampMixin):
    __tablename__ = "variable_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[TransactionKind] = mapped_column(KIND_ENUM, nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    # UTC, naive
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL")
    )

    category: Mapped[Optional["Category"]] = relationship("Category")

    __table_args__ = (
        Index("ix_variable_transactions_occurred_at", "occurred_at"),
        CheckConstraint("amount_cents > 0", name="ck_variable_amount_positive"),
    )


class FixedItem(Base, TimestampMixin):
    __tablename__ = "fixed_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[TransactionKind] = mapped_column(KIND_ENUM, nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL")
    )

    category: Mapped[Optional["Category"]] = relationship("Category")
    variations: Mapped[list["MonthlyVariation"]] = relationship(
        "MonthlyVariation",
        back_populates="fixed_item",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_fixed_amount_positive"),
        CheckConstraint("day BETWEEN 1 AND 31", name="ck_fixed_day_range"),
        CheckConstraint(
            "end_at IS NULL OR end_at >= start_at", name="ck_fixed_end_after_start"
        ),
    )


class MonthlyVariation(Base, TimestampMixin):
    __tablename__ = "monthly_variations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fixed_item_id: Mapped[int] = mapped_column(
        ForeignKey("fixed_items.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[TransactionKind] = mapped_column(KIND_ENUM, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    # zero-based, 0 = January
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    fixed_item: Mapped["FixedItem"] = relationship(
        "FixedItem", back_populates="variations"
    )

    __table_args__ = (
        UniqueConstraint(
            "fixed_item_id",
            "kind",
            "year",
            "month",
            name="uq_variation_item_kind_month",
        ),
        CheckConstraint("month BETWEEN 0 AND 11", name="ck_variation_month_range"),
        CheckConstraint("amount_cents >= 0", name="ck_variation_amount_positive"),
    )


class InstallmentPurchase(Base, TimestampMixin):
    __tablename__ = "installment_purchases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    anchor_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    installment_count: Mapped[int] = mapped_column(Integer, nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL")
    )

    category: Mapped[Optional["Category"]] = relationship("Category")
    installments: Mapped[list["Installment"]] = relationship(
        "Installment",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="Installment.number",
    )

    __table_args__ = (
        CheckConstraint("total_cents > 0", name="ck_purchase_total_positive"),
        CheckConstraint("installment_count >= 1", name="ck_purchase_count_positive"),
    )


class Installment(Base, TimestampMixin):
    __tablename__ = "installments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    purchase_id: Mapped[int] = mapped_column(
        ForeignKey("installment_purchases.id", ondelete="CASCADE"), nullable=False
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    due_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    purchase: Mapped["InstallmentPurchase"] = relationship(
        "InstallmentPurchase", back_populates="installments"
    )

    __table_args__ = (
        UniqueConstraint("purchase_id", "number", name="uq_installment_number"),
        Index("ix_installments_due_at", "due_at"),
        CheckConstraint("amount_cents >= 0", name="ck_installment_amount_positive"),
    )
