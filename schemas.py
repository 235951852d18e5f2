import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain import TransactionKind


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    kind: TransactionKind
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")
    description: Optional[str] = Field(default=None, max_length=500)


class VariableTransactionIn(BaseModel):
    kind: TransactionKind
    description: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(..., gt=0)
    date: dt.date
    category_id: Optional[int] = None


class FixedItemIn(BaseModel):
    kind: TransactionKind
    description: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(..., gt=0)
    day: int = Field(..., ge=1, le=31)
    start_date: dt.date
    end_date: Optional[dt.date] = None
    category_id: Optional[int] = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "FixedItemIn":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        return self


class MonthlyVariationIn(BaseModel):
    fixed_item_id: int
    kind: TransactionKind
    year: int = Field(..., ge=1970, le=3000)
    month: int = Field(..., ge=0, le=11, description="Zero-based month, 0 = January")
    amount_cents: int = Field(..., ge=0)


class InstallmentPurchaseIn(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    total_cents: int = Field(..., gt=0)
    installment_count: int = Field(..., ge=1, le=360)
    anchor_date: dt.date
    category_id: Optional[int] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    kind: TransactionKind
    color: Optional[str]
    description: Optional[str]


class VariableTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: TransactionKind
    description: str
    amount_cents: int
    occurred_at: dt.datetime
    category_id: Optional[int]


class FixedItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: TransactionKind
    description: str
    amount_cents: int
    day: int
    start_at: dt.datetime
    end_at: Optional[dt.datetime]
    category_id: Optional[int]


class MonthlyVariationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    fixed_item_id: int
    kind: TransactionKind
    year: int
    month: int
    amount_cents: int


class InstallmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: int
    amount_cents: int
    due_at: dt.datetime


class InstallmentPurchaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    total_cents: int
    installment_count: int
    anchor_at: dt.datetime
    category_id: Optional[int]
    installments: list[InstallmentOut]
