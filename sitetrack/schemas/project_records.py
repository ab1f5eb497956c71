from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, field_validator


ApprovalStatus = Literal["Pending", "Approved", "Rejected"]
DrawingCategory = Literal["Drawing", "Approval"]


def _require_description(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("Description is required")
    return v.strip()


class DrawingCreate(BaseModel):
    category: DrawingCategory = "Drawing"
    description: str
    record_date: Optional[date] = None

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str) -> str:
        return _require_description(v)


class DrawingResponse(BaseModel):
    sr_no: int
    category: str
    description: str
    record_date: Optional[date] = None

    class Config:
        from_attributes = True


class ApprovalCreate(BaseModel):
    description: str
    record_date: Optional[date] = None

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str) -> str:
        return _require_description(v)


class ApprovalStatusUpdate(BaseModel):
    status: ApprovalStatus


class ApprovalResponse(BaseModel):
    sr_no: int
    description: str
    record_date: Optional[date] = None
    status: ApprovalStatus

    class Config:
        from_attributes = True


class DrawingPage(BaseModel):
    items: List[DrawingResponse]
    page: int
    page_size: int
    total: int
    total_pages: int
    next_sr_no: int


class ApprovalPage(BaseModel):
    items: List[ApprovalResponse]
    page: int
    page_size: int
    total: int
    total_pages: int
    next_sr_no: int
