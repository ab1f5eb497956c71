from datetime import datetime, date, timezone
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Boolean,
    Integer,
    Float,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def int_pk() -> Mapped[int]:
    return mapped_column(Integer, primary_key=True, autoincrement=True)


# ---------- Auth ----------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = int_pk()
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    jti: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    revoked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


# ---------- Hindrances & other inputs ----------
class Hindrance(Base):
    __tablename__ = "hindrances"

    id: Mapped[int] = int_pk()
    tower: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    sr_no: Mapped[int] = mapped_column(Integer, nullable=False)
    item_particulars: Mapped[str] = mapped_column(Text, nullable=False)
    start_from: Mapped[Optional[date]] = mapped_column(Date)
    resolved_on: Mapped[Optional[date]] = mapped_column(Date)
    period_in_days: Mapped[int] = mapped_column(Integer, default=0)
    reason_shortfall: Mapped[Optional[str]] = mapped_column(Text)
    remarks: Mapped[Optional[str]] = mapped_column(Text)


class OtherInput(Base):
    __tablename__ = "other_inputs"

    id: Mapped[int] = int_pk()
    sr_no: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")


# ---------- Drawings & approvals ----------
class ProjectRecord(Base):
    __tablename__ = "project_records"

    sr_no: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="Drawing")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    record_date: Mapped[Optional[date]] = mapped_column(Date)


class Approval(Base):
    __tablename__ = "approvals"

    sr_no: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    record_date: Mapped[Optional[date]] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending", index=True)


# ---------- Plan vs actual (weekly, per tower) ----------
class ConcretePlan(Base):
    __tablename__ = "concrete_plan"
    __table_args__ = (UniqueConstraint("year", "month", "week", "tower", name="uq_concrete_plan_key"),)

    id: Mapped[int] = int_pk()
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    tower: Mapped[str] = mapped_column(String(50), nullable=False)
    planned: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class ConcreteActual(Base):
    __tablename__ = "concrete_actual"
    __table_args__ = (UniqueConstraint("year", "month", "week", "tower", name="uq_concrete_actual_key"),)

    id: Mapped[int] = int_pk()
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    tower: Mapped[str] = mapped_column(String(50), nullable=False)
    actual: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class ManpowerPlan(Base):
    __tablename__ = "manpower_plan"
    __table_args__ = (UniqueConstraint("year", "month", "week", "tower", name="uq_manpower_plan_key"),)

    id: Mapped[int] = int_pk()
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    tower: Mapped[str] = mapped_column(String(50), nullable=False)
    planned: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class ManpowerActual(Base):
    __tablename__ = "manpower_actual"
    __table_args__ = (UniqueConstraint("year", "month", "week", "tower", name="uq_manpower_actual_key"),)

    id: Mapped[int] = int_pk()
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    tower: Mapped[str] = mapped_column(String(50), nullable=False)
    actual: Mapped[float] = mapped_column(Float, nullable=False, default=0)


# ---------- Cashflow (monthly) ----------
class CashflowPlan(Base):
    __tablename__ = "cashflow_plan"
    __table_args__ = (UniqueConstraint("year", "month", name="uq_cashflow_plan_key"),)

    id: Mapped[int] = int_pk()
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    planned: Mapped[Optional[float]] = mapped_column(Float)


class CashflowActual(Base):
    __tablename__ = "cashflow_actual"
    __table_args__ = (UniqueConstraint("year", "month", name="uq_cashflow_actual_key"),)

    id: Mapped[int] = int_pk()
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    actual: Mapped[Optional[float]] = mapped_column(Float)


# ---------- Schedule, stock, tasks, issues ----------
class TowerFinishDate(Base):
    __tablename__ = "tower_finish_dates"

    id: Mapped[int] = int_pk()
    tower: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    planned_finish: Mapped[date] = mapped_column(Date, nullable=False)
    projected_finish: Mapped[date] = mapped_column(Date, nullable=False)
    finish_variance_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class SteelStockRecord(Base):
    __tablename__ = "steel_stock_report"

    sr_no: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dia: Mapped[str] = mapped_column(String(50), nullable=False)
    total_received: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    stock_at_site: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    consumed: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class NonNegotiable(Base):
    __tablename__ = "monthly_non_negotiables"

    id: Mapped[int] = int_pk()
    tower: Mapped[str] = mapped_column(String(100), nullable=False)
    task_description: Mapped[str] = mapped_column(Text, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class CriticalIssue(Base):
    __tablename__ = "critical_issues"

    id: Mapped[int] = int_pk()
    issue_description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (Index("ix_critical_issues_category", "category"),)
