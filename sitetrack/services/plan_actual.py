"""
Plan/actual pairs: two parallel tables keyed by the same natural key
(year+month+week+tower for weekly data, year+month for cashflow).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy.orm import Session

from ..models.models import (
    ConcretePlan,
    ConcreteActual,
    ManpowerPlan,
    ManpowerActual,
    CashflowPlan,
    CashflowActual,
)
from .realtime import INSERT, UPDATE
from .records import row_to_dict


PLAN = "plan"
ACTUAL = "actual"


@dataclass(frozen=True)
class PlanActualPair:
    name: str
    plan_model: Type[Any]
    actual_model: Type[Any]
    key_fields: Tuple[str, ...]
    # True: a new entry clashes if either table already has the key,
    # False: only the tables that receive a value are checked
    check_both: bool

    def model_for(self, kind: str) -> Type[Any]:
        return self.plan_model if kind == PLAN else self.actual_model

    @staticmethod
    def value_field(kind: str) -> str:
        return "planned" if kind == PLAN else "actual"


CONCRETE = PlanActualPair("concrete", ConcretePlan, ConcreteActual, ("year", "month", "week", "tower"), check_both=False)
MANPOWER = PlanActualPair("manpower", ManpowerPlan, ManpowerActual, ("year", "month", "week", "tower"), check_both=True)
CASHFLOW = PlanActualPair("cashflow", CashflowPlan, CashflowActual, ("year", "month"), check_both=True)


class DuplicateEntry(Exception):
    """A row with the same natural key already exists and overwrite was not requested."""

    def __init__(self, pair: PlanActualPair, key: Dict[str, Any], kinds: List[str]):
        self.pair = pair
        self.key = key
        self.kinds = kinds
        super().__init__(f"{pair.name} entry already exists for {key}")

    def as_detail(self) -> Dict[str, Any]:
        return {
            "message": "Record already exists. Edit the existing entry instead?",
            "key": self.key,
            "kinds": self.kinds,
        }


def supplied_kinds(values: Dict[str, Optional[float]]) -> List[str]:
    kinds = []
    if values.get("planned") is not None:
        kinds.append(PLAN)
    if values.get("actual") is not None:
        kinds.append(ACTUAL)
    return kinds


def find_row(db: Session, model: Type[Any], key: Dict[str, Any]) -> Optional[Any]:
    q = db.query(model)
    for k, v in key.items():
        q = q.filter(getattr(model, k) == v)
    return q.first()


def existing_kinds(db: Session, pair: PlanActualPair, key: Dict[str, Any], kinds: List[str]) -> List[str]:
    candidates = [PLAN, ACTUAL] if pair.check_both else kinds
    return [kind for kind in candidates if find_row(db, pair.model_for(kind), key) is not None]


def upsert(db: Session, model: Type[Any], key: Dict[str, Any], field: str, value: Any):
    """Insert or update the row identified by ``key``. Returns (row, change_type, old_record)."""
    row = find_row(db, model, key)
    if row is None:
        row = model(**key, **{field: value})
        db.add(row)
        return row, INSERT, None
    old = row_to_dict(row)
    setattr(row, field, value)
    return row, UPDATE, old


def save_entry(
    db: Session,
    pair: PlanActualPair,
    key: Dict[str, Any],
    values: Dict[str, Optional[float]],
    overwrite: bool = False,
) -> List[Tuple[str, Any, str, Optional[Dict[str, Any]]]]:
    """Write the supplied planned/actual values for one natural key.

    Raises ``DuplicateEntry`` when the key is taken and ``overwrite`` is false.
    Returns ``(kind, row, change_type, old_record)`` for every written row.
    """
    kinds = supplied_kinds(values)
    if not overwrite:
        clash = existing_kinds(db, pair, key, kinds)
        if clash:
            raise DuplicateEntry(pair, key, clash)
    written = []
    for kind in kinds:
        field = pair.value_field(kind)
        row, change_type, old = upsert(db, pair.model_for(kind), key, field, values[field])
        written.append((kind, row, change_type, old))
    db.commit()
    for _, row, _, _ in written:
        db.refresh(row)
    return written


def fetch_rows(db: Session, model: Type[Any], order_by: str = "id", **filters: Any) -> List[Any]:
    """Rows of ``model`` matching every non-None equality filter."""
    q = db.query(model)
    for k, v in filters.items():
        if v is not None:
            q = q.filter(getattr(model, k) == v)
    return q.order_by(getattr(model, order_by).asc()).all()


def entry_result(written: List[Tuple[str, Any, str, Optional[Dict[str, Any]]]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {PLAN: None, ACTUAL: None, "updated": False}
    for kind, row, change_type, _ in written:
        out[kind] = row_to_dict(row)
        if change_type == UPDATE:
            out["updated"] = True
    return out
