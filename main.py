import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Response
from sqlalchemy.orm import Session

import aggregator
from config import get_settings
from database import SessionLocal, init_db
from dates import local_today, parse_local_date, shift_month
from domain import TransactionKind
from periods import resolve_period
from schemas import (
    CategoryIn,
    CategoryOut,
    FixedItemIn,
    FixedItemOut,
    InstallmentPurchaseIn,
    InstallmentPurchaseOut,
    MonthlyVariationIn,
    MonthlyVariationOut,
    VariableTransactionIn,
    VariableTransactionOut,
)
from services import (
    CategoryService,
    FixedItemService,
    InstallmentService,
    MonthlyVariationService,
    SnapshotService,
    VariableTransactionService,
)

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

MIN_YEAR = 1
MAX_YEAR = 9999

app = FastAPI(title="Ledger Calendar")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup_event():
    init_db()
    logger.info(f"startup: timezone={get_settings().timezone}")


def _raise_for(exc: ValueError) -> None:
    status = 404 if "not found" in str(exc).lower() else 400
    raise HTTPException(status_code=status, detail=str(exc)) from exc


def _parse_day(value: Optional[str]) -> date:
    if not value:
        return local_today()
    try:
        return parse_local_date(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _check_month(year: int, month: int) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise HTTPException(
            status_code=400, detail=f"Year must be between {MIN_YEAR} and {MAX_YEAR}"
        )
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="Month must be between 1 and 12")


# --- categories ---


@app.get("/api/categories", response_model=list[CategoryOut])
def list_categories(kind: Optional[TransactionKind] = None, db: Session = Depends(get_db)):
    return CategoryService(db).list_all(kind)


@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def create_category(data: CategoryIn, db: Session = Depends(get_db)):
    try:
        return CategoryService(db).create(data)
    except ValueError as exc:
        _raise_for(exc)


@app.put("/api/categories/{category_id}", response_model=CategoryOut)
def update_category(category_id: int, data: CategoryIn, db: Session = Depends(get_db)):
    try:
        return CategoryService(db).update(category_id, data)
    except ValueError as exc:
        _raise_for(exc)


@app.delete("/api/categories/{category_id}", status_code=204)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    try:
        CategoryService(db).delete(category_id)
    except ValueError as exc:
        _raise_for(exc)
    return Response(status_code=204)


# --- variable transactions ---


@app.get("/api/transactions", response_model=list[VariableTransactionOut])
def list_transactions(db: Session = Depends(get_db)):
    return VariableTransactionService(db).list_all()


@app.post("/api/transactions", response_model=VariableTransactionOut, status_code=201)
def create_transaction(data: VariableTransactionIn, db: Session = Depends(get_db)):
    try:
        return VariableTransactionService(db).create(data)
    except ValueError as exc:
        _raise_for(exc)


@app.put("/api/transactions/{transaction_id}", response_model=VariableTransactionOut)
def update_transaction(
    transaction_id: int, data: VariableTransactionIn, db: Session = Depends(get_db)
):
    try:
        return VariableTransactionService(db).update(transaction_id, data)
    except ValueError as exc:
        _raise_for(exc)


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        VariableTransactionService(db).delete(transaction_id)
    except ValueError as exc:
        _raise_for(exc)
    return Response(status_code=204)


# --- fixed items & variations ---


@app.get("/api/fixed-items", response_model=list[FixedItemOut])
def list_fixed_items(kind: Optional[TransactionKind] = None, db: Session = Depends(get_db)):
    return FixedItemService(db).list_all(kind)


@app.post("/api/fixed-items", response_model=FixedItemOut, status_code=201)
def create_fixed_item(data: FixedItemIn, db: Session = Depends(get_db)):
    try:
        return FixedItemService(db).create(data)
    except ValueError as exc:
        _raise_for(exc)


@app.put("/api/fixed-items/{item_id}", response_model=FixedItemOut)
def update_fixed_item(item_id: int, data: FixedItemIn, db: Session = Depends(get_db)):
    try:
        return FixedItemService(db).update(item_id, data)
    except ValueError as exc:
        _raise_for(exc)


@app.post("/api/fixed-items/{item_id}/archive", response_model=FixedItemOut)
def archive_fixed_item(item_id: int, db: Session = Depends(get_db)):
    try:
        return FixedItemService(db).archive(item_id)
    except ValueError as exc:
        _raise_for(exc)


@app.delete("/api/fixed-items/{item_id}", status_code=204)
def delete_fixed_item(item_id: int, db: Session = Depends(get_db)):
    try:
        FixedItemService(db).delete(item_id)
    except ValueError as exc:
        _raise_for(exc)
    return Response(status_code=204)


@app.get("/api/variations", response_model=list[MonthlyVariationOut])
def list_variations(fixed_item_id: Optional[int] = None, db: Session = Depends(get_db)):
    return MonthlyVariationService(db).list_all(fixed_item_id)


@app.put("/api/variations")
def set_variation(data: MonthlyVariationIn, db: Session = Depends(get_db)):
    try:
        variation = MonthlyVariationService(db).set_amount(data)
    except ValueError as exc:
        _raise_for(exc)
    if variation is None:
        return Response(status_code=204)
    return MonthlyVariationOut.model_validate(variation)


@app.delete("/api/variations/{variation_id}", status_code=204)
def delete_variation(variation_id: int, db: Session = Depends(get_db)):
    try:
        MonthlyVariationService(db).delete(variation_id)
    except ValueError as exc:
        _raise_for(exc)
    return Response(status_code=204)


# --- installments ---


@app.get("/api/installments", response_model=list[InstallmentPurchaseOut])
def list_installments(db: Session = Depends(get_db)):
    return InstallmentService(db).list_all()


@app.post("/api/installments", response_model=InstallmentPurchaseOut, status_code=201)
def create_installment(data: InstallmentPurchaseIn, db: Session = Depends(get_db)):
    try:
        return InstallmentService(db).create(data)
    except ValueError as exc:
        _raise_for(exc)


@app.delete("/api/installments/{purchase_id}", status_code=204)
def delete_installment(purchase_id: int, db: Session = Depends(get_db)):
    try:
        InstallmentService(db).delete(purchase_id)
    except ValueError as exc:
        _raise_for(exc)
    return Response(status_code=204)


@app.delete("/api/installments/parcels/{installment_id}", status_code=204)
def delete_parcel(installment_id: int, db: Session = Depends(get_db)):
    try:
        InstallmentService(db).delete_parcel(installment_id)
    except ValueError as exc:
        _raise_for(exc)
    return Response(status_code=204)


# --- engine queries ---


@app.get("/api/events/day")
def events_for_day(day: Optional[str] = None, db: Session = Depends(get_db)):
    target = _parse_day(day)
    snapshot = SnapshotService(db).load()
    return {"date": target, "events": aggregator.events_on_date(snapshot, target)}


@app.get("/api/events/range")
def events_for_range(
    period: str = "week",
    anchor: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: Session = Depends(get_db),
):
    try:
        resolved = resolve_period(period, start, end, anchor=_parse_day(anchor))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    snapshot = SnapshotService(db).load()
    return aggregator.events_in_range(snapshot, resolved.start, resolved.end)


@app.get("/api/months/{year}/{month}/summary")
def month_summary(year: int, month: int, db: Session = Depends(get_db)):
    _check_month(year, month)
    snapshot = SnapshotService(db).load()
    return aggregator.month_summary(snapshot, year, month)


@app.get("/api/months/{year}/{month}/categories")
def month_categories(
    year: int,
    month: int,
    kind: Optional[TransactionKind] = None,
    db: Session = Depends(get_db),
):
    _check_month(year, month)
    snapshot = SnapshotService(db).load()
    return aggregator.category_breakdown(snapshot, year, month, kind)


@app.get("/api/months/{year}/{month}/bills")
def month_bills(year: int, month: int, db: Session = Depends(get_db)):
    _check_month(year, month)
    snapshot = SnapshotService(db).load()
    return aggregator.upcoming_bills(snapshot, year, month)


@app.get("/api/balance-history")
def balance_history(
    year: Optional[int] = None,
    month: Optional[int] = None,
    months: int = 12,
    db: Session = Depends(get_db),
):
    today = local_today()
    if year is None:
        year = today.year
    if month is None:
        month = today.month
    _check_month(year, month)
    if not 1 <= months <= 120:
        raise HTTPException(status_code=400, detail="months must be between 1 and 120")
    first_year, _ = shift_month(year, month, -(months - 1))
    if first_year < MIN_YEAR:
        raise HTTPException(status_code=400, detail="History would start before year 1")
    snapshot = SnapshotService(db).load()
    return aggregator.balance_history(snapshot, year, month, months)
