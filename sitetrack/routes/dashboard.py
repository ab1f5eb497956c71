from datetime import datetime
from typing import Optional

import pytz
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..auth.security import get_current_user, get_settings
from ..models.models import (
    ConcretePlan,
    ConcreteActual,
    ManpowerPlan,
    ManpowerActual,
    CashflowPlan,
    CashflowActual,
    TowerFinishDate,
    SteelStockRecord,
    NonNegotiable,
    CriticalIssue,
)
from ..schemas.site import TowerFinishResponse, CriticalIssueResponse
from ..services import aggregation
from ..services.plan_actual import fetch_rows
from ..services.records import row_to_dict
from .site import steel_stock_report


router = APIRouter(tags=["dashboard"])


def current_year(tz_name: str) -> int:
    return datetime.now(pytz.timezone(tz_name)).year


def _rows(db: Session, model, **filters):
    return [row_to_dict(r) for r in fetch_rows(db, model, **filters)]


@router.get("/dashboard")
def dashboard(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _=Depends(get_current_user),
):
    """Every chart and table of the overview page in one payload."""
    year = year or current_year(settings.tz_default)

    # physical progress covers the whole project, not one year
    totals = aggregation.tower_totals(_rows(db, ConcretePlan), _rows(db, ConcreteActual), settings.towers)
    progress = aggregation.progress_percent(totals, settings.tower_targets)

    manpower = [
        {"month": m["month"], "month_name": m["month_name"],
         "planned": round(m["avg_planned"]), "actual": round(m["avg_actual"])}
        for m in aggregation.weekly_average_series(
            _rows(db, ManpowerPlan, year=year), _rows(db, ManpowerActual, year=year)
        )
    ]

    concrete = [
        {"month": m["month"], "month_name": m["month_name"],
         "planned": round(m["planned"]), "actual": round(m["actual"])}
        for m in aggregation.cumulative_series(
            _rows(db, ConcretePlan, year=year), _rows(db, ConcreteActual, year=year)
        )
        if m["planned"] or m["actual"]
    ]

    cashflow = [
        m
        for m in aggregation.cumulative_series(
            _rows(db, CashflowPlan, year=year), _rows(db, CashflowActual, year=year), keep_missing=True
        )
        if m["planned"] is not None or m["actual"] is not None
    ]

    finish_dates = [
        TowerFinishResponse.model_validate(r)
        for r in db.query(TowerFinishDate).order_by(TowerFinishDate.tower.asc()).all()
    ]
    issues = [
        CriticalIssueResponse.model_validate(r)
        for r in db.query(CriticalIssue).order_by(CriticalIssue.id.desc()).limit(settings.critical_issues_page_size).all()
    ]
    pending = [
        row_to_dict(r)
        for r in db.query(NonNegotiable).filter(NonNegotiable.is_completed.is_(False)).order_by(NonNegotiable.id.asc()).all()
    ]
    steel = steel_stock_report(_rows(db, SteelStockRecord, order_by="sr_no"))

    return {
        "year": year,
        "progress": progress,
        "manpower": manpower,
        "concrete": concrete,
        "cashflow": cashflow,
        "tower_finish_dates": finish_dates,
        "critical_issues": issues,
        "pending_non_negotiables": pending,
        "steel_stock": steel,
    }
