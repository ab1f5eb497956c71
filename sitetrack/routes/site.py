from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Query
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..auth.security import get_current_user, get_settings
from ..models.models import TowerFinishDate, SteelStockRecord, NonNegotiable, CriticalIssue
from ..schemas.site import (
    CriticalIssueCreate,
    CriticalIssuePage,
    CriticalIssueResponse,
    NonNegotiableCreate,
    NonNegotiableResponse,
    SteelStockCreate,
    SteelStockReport,
    SteelStockResponse,
    TowerFinishCreate,
    TowerFinishPage,
    TowerFinishResponse,
)
from ..services import aggregation
from ..services.listing import filter_contains, paginate
from ..services.records import apply_changes, get_or_404, row_to_dict
from ..services.realtime import publish_change, INSERT, UPDATE, DELETE
from ..logging import structlog


router = APIRouter(tags=["site"])
logger = structlog.get_logger(__name__)


def _insert(db: Session, request: Request, row, event: str, user_id: int):
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(event, record=row_to_dict(row), user_id=user_id)
    publish_change(request, row.__tablename__, INSERT, row_to_dict(row))
    return row


def _update(db: Session, request: Request, row, changes: dict, event: str, user_id: int):
    old = apply_changes(row, changes)
    db.commit()
    db.refresh(row)
    logger.info(event, record=row_to_dict(row), user_id=user_id)
    publish_change(request, row.__tablename__, UPDATE, row_to_dict(row), old)
    return row


def _delete(db: Session, request: Request, row, key: int, event: str, user_id: int) -> dict:
    old = row_to_dict(row)
    db.delete(row)
    db.commit()
    logger.info(event, key=key, user_id=user_id)
    publish_change(request, row.__tablename__, DELETE, None, old)
    return {"message": "Deleted successfully", "deleted": key}


# ---------- TOWER FINISH DATES ----------
@router.get("/tower-finish-dates", response_model=TowerFinishPage)
def list_tower_finish_dates(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=-1),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    rows = db.query(TowerFinishDate).order_by(TowerFinishDate.tower.asc()).all()
    return paginate(rows, page=page, page_size=page_size)


@router.post("/tower-finish-dates", response_model=TowerFinishResponse, status_code=201)
def create_tower_finish_date(payload: TowerFinishCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    # a second record for the same tower fails on the unique constraint (409)
    return _insert(db, request, TowerFinishDate(**payload.model_dump()), "tower_finish_created", user.id)


@router.put("/tower-finish-dates/{finish_id}", response_model=TowerFinishResponse)
def update_tower_finish_date(finish_id: int, payload: TowerFinishCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, TowerFinishDate, finish_id, "Finish record")
    return _update(db, request, row, payload.model_dump(), "tower_finish_updated", user.id)


@router.delete("/tower-finish-dates/{finish_id}")
def delete_tower_finish_date(finish_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, TowerFinishDate, finish_id, "Finish record")
    return _delete(db, request, row, finish_id, "tower_finish_deleted", user.id)


# ---------- STEEL STOCK ----------
def steel_stock_report(rows: List[dict]) -> dict:
    return {
        "records": rows,
        "totals": {
            "total_received": aggregation.sum_values(rows, "total_received"),
            "stock_at_site": aggregation.sum_values(rows, "stock_at_site"),
            "consumed": aggregation.sum_values(rows, "consumed"),
        },
    }


@router.get("/steel-stock", response_model=SteelStockReport)
def list_steel_stock(dia: Optional[str] = None, db: Session = Depends(get_db), _=Depends(get_current_user)):
    rows = [row_to_dict(r) for r in db.query(SteelStockRecord).order_by(SteelStockRecord.sr_no.asc()).all()]
    return steel_stock_report(filter_contains(rows, "dia", dia))


@router.post("/steel-stock", response_model=SteelStockResponse, status_code=201)
def create_steel_stock(payload: SteelStockCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    return _insert(db, request, SteelStockRecord(**payload.model_dump()), "steel_stock_created", user.id)


@router.put("/steel-stock/{sr_no}", response_model=SteelStockResponse)
def update_steel_stock(sr_no: int, payload: SteelStockCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, SteelStockRecord, sr_no)
    return _update(db, request, row, payload.model_dump(), "steel_stock_updated", user.id)


@router.delete("/steel-stock/{sr_no}")
def delete_steel_stock(sr_no: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, SteelStockRecord, sr_no)
    return _delete(db, request, row, sr_no, "steel_stock_deleted", user.id)


# ---------- NON-NEGOTIABLES ----------
@router.get("/non-negotiables", response_model=List[NonNegotiableResponse])
def list_non_negotiables(db: Session = Depends(get_db), _=Depends(get_current_user)):
    return db.query(NonNegotiable).order_by(NonNegotiable.id.asc()).all()


@router.post("/non-negotiables", response_model=NonNegotiableResponse, status_code=201)
def create_non_negotiable(payload: NonNegotiableCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    return _insert(db, request, NonNegotiable(**payload.model_dump()), "non_negotiable_created", user.id)


@router.put("/non-negotiables/{task_id}", response_model=NonNegotiableResponse)
def update_non_negotiable(task_id: int, payload: NonNegotiableCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, NonNegotiable, task_id, "Task")
    return _update(db, request, row, payload.model_dump(), "non_negotiable_updated", user.id)


@router.post("/non-negotiables/{task_id}/toggle", response_model=NonNegotiableResponse)
def toggle_non_negotiable(task_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, NonNegotiable, task_id, "Task")
    return _update(db, request, row, {"is_completed": not row.is_completed}, "non_negotiable_toggled", user.id)


@router.delete("/non-negotiables/{task_id}")
def delete_non_negotiable(task_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, NonNegotiable, task_id, "Task")
    return _delete(db, request, row, task_id, "non_negotiable_deleted", user.id)


# ---------- CRITICAL ISSUES ----------
@router.get("/critical-issues", response_model=CriticalIssuePage)
def list_critical_issues(
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=-1),
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _=Depends(get_current_user),
):
    q = db.query(CriticalIssue)
    if category:
        q = q.filter(CriticalIssue.category == category)
    rows = q.order_by(CriticalIssue.id.desc()).all()
    return paginate(rows, page=page, page_size=page_size or settings.critical_issues_page_size)


@router.post("/critical-issues", response_model=CriticalIssueResponse, status_code=201)
def create_critical_issue(payload: CriticalIssueCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = CriticalIssue(issue_description=payload.issue_description, category=payload.final_category())
    return _insert(db, request, row, "critical_issue_created", user.id)


@router.put("/critical-issues/{issue_id}", response_model=CriticalIssueResponse)
def update_critical_issue(issue_id: int, payload: CriticalIssueCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, CriticalIssue, issue_id, "Issue")
    changes = {"issue_description": payload.issue_description, "category": payload.final_category()}
    return _update(db, request, row, changes, "critical_issue_updated", user.id)


@router.delete("/critical-issues/{issue_id}")
def delete_critical_issue(issue_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, CriticalIssue, issue_id, "Issue")
    return _delete(db, request, row, issue_id, "critical_issue_deleted", user.id)
