from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence, Type

from fastapi import HTTPException
from fastapi.requests import HTTPConnection
from sqlalchemy import func, inspect
from sqlalchemy.orm import Session

from .realtime import publish_change, DELETE


def row_to_dict(row: Any) -> Dict[str, Any]:
    """Column values of an ORM row, with dates rendered as ISO strings."""
    out: Dict[str, Any] = {}
    for attr in inspect(row).mapper.column_attrs:
        value = getattr(row, attr.key)
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        out[attr.key] = value
    return out


def get_or_404(db: Session, model: Type[Any], key: Any, label: str = "Record") -> Any:
    row = db.get(model, key)
    if row is None:
        raise HTTPException(status_code=404, detail=f"{label} #{key} not found")
    return row


def apply_changes(row: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Set attributes on ``row`` and return its state before the change."""
    before = row_to_dict(row)
    for k, v in changes.items():
        setattr(row, k, v)
    return before


def next_sr_no(db: Session, model: Type[Any]) -> int:
    current: Optional[int] = db.query(func.max(model.sr_no)).scalar()
    return (current or 0) + 1


def require_tower(tower: str, towers: Sequence[str]) -> str:
    if tower not in towers:
        raise HTTPException(status_code=400, detail=f"Unknown tower {tower!r}; expected one of {', '.join(towers)}")
    return tower


def delete_row(db: Session, conn: HTTPConnection, model: Type[Any], key: Any, label: str = "Record") -> Dict[str, Any]:
    """Delete one row by primary key, publish the DELETE and return the confirmation body."""
    row = get_or_404(db, model, key, label)
    old = row_to_dict(row)
    db.delete(row)
    db.commit()
    publish_change(conn, model.__tablename__, DELETE, None, old)
    return {"message": "Deleted successfully", "deleted": key}
