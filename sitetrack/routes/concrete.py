from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Query
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..auth.security import get_current_user, get_settings
from ..models.models import ConcretePlan, ConcreteActual
from ..schemas.progress import WeeklyEntry, WeeklyView, EntryResult
from ..services import aggregation
from ..services.plan_actual import CONCRETE, DuplicateEntry, entry_result, fetch_rows, save_entry
from ..services.records import delete_row, require_tower, row_to_dict
from ..services.realtime import publish_change
from ..logging import structlog


router = APIRouter(prefix="/concrete", tags=["concrete"])
logger = structlog.get_logger(__name__)


@router.get("/weeks", response_model=WeeklyView)
def week_view(
    year: int,
    month: int = Query(ge=1, le=12),
    tower: str = Query(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _=Depends(get_current_user),
):
    """Weekly rows of one tower/month plus the month total and the running total since January."""
    require_tower(tower, settings.towers)
    year_plan = [row_to_dict(r) for r in fetch_rows(db, ConcretePlan, "week", year=year, tower=tower)]
    year_actual = [row_to_dict(r) for r in fetch_rows(db, ConcreteActual, "week", year=year, tower=tower)]
    plan = [r for r in year_plan if r["month"] == month]
    actual = [r for r in year_actual if r["month"] == month]
    series = aggregation.cumulative_series(year_plan, year_actual)
    return {
        "year": year,
        "month": month,
        "tower": tower,
        "plan": plan,
        "actual": actual,
        "monthly_planned": aggregation.sum_values(plan, "planned"),
        "monthly_actual": aggregation.sum_values(actual, "actual"),
        "cumulative_planned": series[month - 1]["cumulative_planned"],
        "cumulative_actual": series[month - 1]["cumulative_actual"],
    }


@router.get("/yearly")
def yearly(
    year: int,
    tower: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _=Depends(get_current_user),
):
    if tower:
        require_tower(tower, settings.towers)
    plan = [row_to_dict(r) for r in fetch_rows(db, ConcretePlan, "month", year=year, tower=tower)]
    actual = [row_to_dict(r) for r in fetch_rows(db, ConcreteActual, "month", year=year, tower=tower)]
    return {"year": year, "tower": tower, "months": aggregation.cumulative_series(plan, actual)}


@router.get("/by-tower")
def by_tower(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _=Depends(get_current_user),
):
    """Plan vs actual per tower, with physical progress against each tower's target volume."""
    plan = [row_to_dict(r) for r in fetch_rows(db, ConcretePlan, year=year)]
    actual = [row_to_dict(r) for r in fetch_rows(db, ConcreteActual, year=year)]
    totals = aggregation.tower_totals(plan, actual, settings.towers)
    return {
        "year": year,
        "towers": totals,
        "progress": aggregation.progress_percent(totals, settings.tower_targets),
    }


@router.post("/entries", response_model=EntryResult)
def save_concrete_entry(
    payload: WeeklyEntry,
    request: Request,
    overwrite: bool = False,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user=Depends(get_current_user),
):
    require_tower(payload.tower, settings.towers)
    key = payload.model_dump(include={"year", "month", "week", "tower"})
    try:
        written = save_entry(db, CONCRETE, key, payload.model_dump(include={"planned", "actual"}), overwrite=overwrite)
    except DuplicateEntry as e:
        logger.info("concrete_entry_exists", key=e.key, kinds=e.kinds, user_id=user.id)
        raise HTTPException(status_code=409, detail=e.as_detail())
    for kind, row, change_type, old in written:
        publish_change(request, CONCRETE.model_for(kind).__tablename__, change_type, row_to_dict(row), old)
    logger.info("concrete_entry_saved", key=key, overwrite=overwrite, user_id=user.id)
    return entry_result(written)


@router.delete("/plan/{row_id}")
def delete_plan(row_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    out = delete_row(db, request, ConcretePlan, row_id, "Entry")
    logger.info("concrete_plan_deleted", id=row_id, user_id=user.id)
    return out


@router.delete("/actual/{row_id}")
def delete_actual(row_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    out = delete_row(db, request, ConcreteActual, row_id, "Entry")
    logger.info("concrete_actual_deleted", id=row_id, user_id=user.id)
    return out
