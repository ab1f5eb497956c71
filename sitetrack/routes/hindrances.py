from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user
from ..models.models import Hindrance, OtherInput
from ..schemas.hindrances import (
    HindranceCreate,
    normalize_hindrance_tower,
    HindranceResponse,
    OtherInputCreate,
    OtherInputResponse,
)
from ..services.records import apply_changes, get_or_404, row_to_dict
from ..services.realtime import publish_change, INSERT, UPDATE, DELETE
from ..logging import structlog


router = APIRouter(tags=["hindrances"])
logger = structlog.get_logger(__name__)


# ---------- HINDRANCES ----------
@router.get("/hindrances", response_model=List[HindranceResponse])
def list_hindrances(tower: Optional[str] = None, db: Session = Depends(get_db), _=Depends(get_current_user)):
    q = db.query(Hindrance)
    if tower:
        try:
            tower = normalize_hindrance_tower(tower)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        q = q.filter(Hindrance.tower == tower)
    return q.order_by(Hindrance.id.asc()).all()


@router.post("/hindrances", response_model=HindranceResponse, status_code=201)
def create_hindrance(payload: HindranceCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = Hindrance(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("hindrance_created", id=row.id, tower=row.tower, user_id=user.id)
    publish_change(request, Hindrance.__tablename__, INSERT, row_to_dict(row))
    return row


@router.put("/hindrances/{hindrance_id}", response_model=HindranceResponse)
def update_hindrance(hindrance_id: int, payload: HindranceCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, Hindrance, hindrance_id, "Hindrance")
    old = apply_changes(row, payload.model_dump())
    db.commit()
    db.refresh(row)
    logger.info("hindrance_updated", id=row.id, user_id=user.id)
    publish_change(request, Hindrance.__tablename__, UPDATE, row_to_dict(row), old)
    return row


@router.delete("/hindrances/{hindrance_id}")
def delete_hindrance(hindrance_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, Hindrance, hindrance_id, "Hindrance")
    old = row_to_dict(row)
    db.delete(row)
    db.commit()
    logger.info("hindrance_deleted", id=hindrance_id, user_id=user.id)
    publish_change(request, Hindrance.__tablename__, DELETE, None, old)
    return {"message": "Deleted successfully", "deleted": hindrance_id}


# ---------- OTHER INPUTS ----------
@router.get("/other-inputs", response_model=List[OtherInputResponse])
def list_other_inputs(db: Session = Depends(get_db), _=Depends(get_current_user)):
    return db.query(OtherInput).order_by(OtherInput.id.asc()).all()


@router.post("/other-inputs", response_model=OtherInputResponse, status_code=201)
def create_other_input(payload: OtherInputCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = OtherInput(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("other_input_created", id=row.id, user_id=user.id)
    publish_change(request, OtherInput.__tablename__, INSERT, row_to_dict(row))
    return row


@router.put("/other-inputs/{input_id}", response_model=OtherInputResponse)
def update_other_input(input_id: int, payload: OtherInputCreate, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, OtherInput, input_id, "Input")
    old = apply_changes(row, payload.model_dump())
    db.commit()
    db.refresh(row)
    logger.info("other_input_updated", id=row.id, user_id=user.id)
    publish_change(request, OtherInput.__tablename__, UPDATE, row_to_dict(row), old)
    return row


@router.delete("/other-inputs/{input_id}")
def delete_other_input(input_id: int, request: Request, db: Session = Depends(get_db), user=Depends(get_current_user)):
    row = get_or_404(db, OtherInput, input_id, "Input")
    old = row_to_dict(row)
    db.delete(row)
    db.commit()
    logger.info("other_input_deleted", id=input_id, user_id=user.id)
    publish_change(request, OtherInput.__tablename__, DELETE, None, old)
    return {"message": "Deleted successfully", "deleted": input_id}
