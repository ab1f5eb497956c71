from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user
from ..models.models import CashflowPlan, CashflowActual
from ..schemas.progress import MonthlyEntry, EntryResult
from ..services import aggregation
from ..services.plan_actual import CASHFLOW, DuplicateEntry, entry_result, fetch_rows, save_entry
from ..services.records import delete_row, row_to_dict
from ..services.realtime import publish_change
from ..logging import structlog


router = APIRouter(prefix="/cashflow", tags=["cashflow"])
logger = structlog.get_logger(__name__)


@router.get("")
def cashflow_year(year: int, db: Session = Depends(get_db), _=Depends(get_current_user)):
    """Twelve months of planned/actual cashflow (Cr.) with running totals.

    A month without a value reports null but keeps the running total unchanged.
    """
    plan = [row_to_dict(r) for r in fetch_rows(db, CashflowPlan, "month", year=year)]
    actual = [row_to_dict(r) for r in fetch_rows(db, CashflowActual, "month", year=year)]
    return {
        "year": year,
        "plan": plan,
        "actual": actual,
        "months": aggregation.cumulative_series(plan, actual, keep_missing=True),
    }


@router.post("/entries", response_model=EntryResult)
def save_cashflow_entry(
    payload: MonthlyEntry,
    request: Request,
    overwrite: bool = False,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    key = payload.model_dump(include={"year", "month"})
    try:
        written = save_entry(db, CASHFLOW, key, payload.model_dump(include={"planned", "actual"}), overwrite=overwrite)
    except DuplicateEntry as e:
        logger.info("cashflow_entry_exists", key=e.key, kinds=e.kinds, user_id=user.id)
        raise HTTPException(status_code=409, detail=e.as_detail())
    for kind, row, change_type, old in written:
        publish_change(request, CASHFLOW.model_for(kind).__tablename__, change_type, row_to_dict(row), old)
    logger.info("cashflow_entry_saved", key=key, overwrite=overwrite, user_id=user.id)
    return entry_result(written)


@router.delete("/plan/{row_id}")
def delete_plan(row_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    out = delete_row(db, request, CashflowPlan, row_id, "Entry")
    logger.info("cashflow_plan_deleted", id=row_id, user_id=user.id)
    return out


@router.delete("/actual/{row_id}")
def delete_actual(row_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    out = delete_row(db, request, CashflowActual, row_id, "Entry")
    logger.info("cashflow_actual_deleted", id=row_id, user_id=user.id)
    return out
