from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Query
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..auth.security import get_current_user, get_settings
from ..models.models import ManpowerPlan, ManpowerActual
from ..schemas.progress import WeeklyEntry, WeeklyView, EntryResult
from ..services import aggregation
from ..services.plan_actual import MANPOWER, DuplicateEntry, entry_result, fetch_rows, save_entry
from ..services.records import delete_row, require_tower, row_to_dict
from ..services.realtime import publish_change
from ..logging import structlog


router = APIRouter(prefix="/manpower", tags=["manpower"])
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
    require_tower(tower, settings.towers)
    year_plan = [row_to_dict(r) for r in fetch_rows(db, ManpowerPlan, "week", year=year, tower=tower)]
    year_actual = [row_to_dict(r) for r in fetch_rows(db, ManpowerActual, "week", year=year, tower=tower)]
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
    """Monthly headcount sums and the average per weekly entry."""
    if tower:
        require_tower(tower, settings.towers)
    plan = [row_to_dict(r) for r in fetch_rows(db, ManpowerPlan, "month", year=year, tower=tower)]
    actual = [row_to_dict(r) for r in fetch_rows(db, ManpowerActual, "month", year=year, tower=tower)]
    return {"year": year, "tower": tower, "months": aggregation.weekly_average_series(plan, actual)}


@router.get("/by-tower")
def by_tower(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _=Depends(get_current_user),
):
    plan = [row_to_dict(r) for r in fetch_rows(db, ManpowerPlan, year=year)]
    actual = [row_to_dict(r) for r in fetch_rows(db, ManpowerActual, year=year)]
    return {"year": year, "towers": aggregation.tower_totals(plan, actual, settings.towers)}


@router.post("/entries", response_model=EntryResult)
def save_manpower_entry(
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
        written = save_entry(db, MANPOWER, key, payload.model_dump(include={"planned", "actual"}), overwrite=overwrite)
    except DuplicateEntry as e:
        logger.info("manpower_entry_exists", key=e.key, kinds=e.kinds, user_id=user.id)
        raise HTTPException(status_code=409, detail=e.as_detail())
    for kind, row, change_type, old in written:
        publish_change(request, MANPOWER.model_for(kind).__tablename__, change_type, row_to_dict(row), old)
    logger.info("manpower_entry_saved", key=key, overwrite=overwrite, user_id=user.id)
    return entry_result(written)


@router.delete("/plan/{row_id}")
def delete_plan(row_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    out = delete_row(db, request, ManpowerPlan, row_id, "Entry")
    logger.info("manpower_plan_deleted", id=row_id, user_id=user.id)
    return out


@router.delete("/actual/{row_id}")
def delete_actual(row_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    out = delete_row(db, request, ManpowerActual, row_id, "Entry")
    logger.info("manpower_actual_deleted", id=row_id, user_id=user.id)
    return out
