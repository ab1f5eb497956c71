from typing import Optional

from fastapi import APIRouter, Depends, Request, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user
from ..models.models import ProjectRecord, Approval
from ..schemas.project_records import (
    ApprovalCreate,
    ApprovalPage,
    ApprovalResponse,
    ApprovalStatus,
    ApprovalStatusUpdate,
    DrawingCreate,
    DrawingPage,
    DrawingResponse,
)
from ..services.listing import filter_by_record_date, paginate
from ..services.records import apply_changes, get_or_404, next_sr_no, row_to_dict
from ..services.realtime import publish_change, INSERT, UPDATE, DELETE
from ..logging import structlog


router = APIRouter(tags=["project-records"])
logger = structlog.get_logger(__name__)


def _record_page(db: Session, model, year, month, status, page, page_size) -> dict:
    rows = db.query(model).order_by(model.sr_no.asc()).all()
    filtered = filter_by_record_date([row_to_dict(r) for r in rows], year=year, month=month, status=status)
    out = paginate(filtered, page=page, page_size=page_size)
    out["next_sr_no"] = (rows[-1].sr_no + 1) if rows else 1
    return out


# ---------- DRAWINGS ----------
@router.get("/drawings", response_model=DrawingPage)
def list_drawings(
    year: Optional[int] = None,
    month: Optional[int] = Query(default=None, ge=1, le=12),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=-1),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    return _record_page(db, ProjectRecord, year, month, None, page, page_size)


@router.post("/drawings", response_model=DrawingResponse, status_code=201)
def create_drawing(payload: DrawingCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = ProjectRecord(sr_no=next_sr_no(db, ProjectRecord), **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("drawing_created", sr_no=row.sr_no, user_id=user.id)
    publish_change(request, ProjectRecord.__tablename__, INSERT, row_to_dict(row))
    return row


@router.put("/drawings/{sr_no}", response_model=DrawingResponse)
def update_drawing(sr_no: int, payload: DrawingCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, ProjectRecord, sr_no)
    old = apply_changes(row, payload.model_dump())
    db.commit()
    db.refresh(row)
    logger.info("drawing_updated", sr_no=sr_no, user_id=user.id)
    publish_change(request, ProjectRecord.__tablename__, UPDATE, row_to_dict(row), old)
    return row


@router.delete("/drawings/{sr_no}")
def delete_drawing(sr_no: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, ProjectRecord, sr_no)
    old = row_to_dict(row)
    db.delete(row)
    db.commit()
    logger.info("drawing_deleted", sr_no=sr_no, user_id=user.id)
    publish_change(request, ProjectRecord.__tablename__, DELETE, None, old)
    return {"message": f"Record #{sr_no} deleted successfully", "deleted": sr_no}


# ---------- APPROVALS ----------
@router.get("/approvals", response_model=ApprovalPage)
def list_approvals(
    year: Optional[int] = None,
    month: Optional[int] = Query(default=None, ge=1, le=12),
    status: Optional[ApprovalStatus] = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=-1),
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    return _record_page(db, Approval, year, month, status, page, page_size)


@router.post("/approvals", response_model=ApprovalResponse, status_code=201)
def create_approval(payload: ApprovalCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = Approval(sr_no=next_sr_no(db, Approval), status="Pending", **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("approval_created", sr_no=row.sr_no, user_id=user.id)
    publish_change(request, Approval.__tablename__, INSERT, row_to_dict(row))
    return row


@router.put("/approvals/{sr_no}", response_model=ApprovalResponse)
def update_approval(sr_no: int, payload: ApprovalCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, Approval, sr_no)
    old = apply_changes(row, payload.model_dump())
    db.commit()
    db.refresh(row)
    logger.info("approval_updated", sr_no=sr_no, user_id=user.id)
    publish_change(request, Approval.__tablename__, UPDATE, row_to_dict(row), old)
    return row


@router.post("/approvals/{sr_no}/status", response_model=ApprovalResponse)
def set_approval_status(sr_no: int, payload: ApprovalStatusUpdate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, Approval, sr_no)
    old = apply_changes(row, {"status": payload.status})
    db.commit()
    db.refresh(row)
    logger.info("approval_status_changed", sr_no=sr_no, status=row.status, user_id=user.id)
    publish_change(request, Approval.__tablename__, UPDATE, row_to_dict(row), old)
    return row


@router.delete("/approvals/{sr_no}")
def delete_approval(sr_no: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, Approval, sr_no)
    old = row_to_dict(row)
    db.delete(row)
    db.commit()
    logger.info("approval_deleted", sr_no=sr_no, user_id=user.id)
    publish_change(request, Approval.__tablename__, DELETE, None, old)
    return {"message": f"Record #{sr_no} deleted successfully", "deleted": sr_no}
