from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from ..services import aggregation


CRITICAL_ISSUE_CATEGORIES = ["Labour", "Material", "Technical", "General", "Other"]


# ---------- Tower finish dates ----------
class TowerFinishCreate(BaseModel):
    tower: str
    planned_finish: date
    projected_finish: date
    # Manually entered; derived from the two dates when omitted
    finish_variance_days: Optional[int] = None

    @field_validator("tower")
    @classmethod
    def check_tower(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Tower is required")
        return v.strip()

    @model_validator(mode="after")
    def fill_variance(self):
        if self.finish_variance_days is None:
            self.finish_variance_days = aggregation.variance_days(self.planned_finish, self.projected_finish)
        return self


class TowerFinishResponse(BaseModel):
    id: int
    tower: str
    planned_finish: date
    projected_finish: date
    finish_variance_days: int

    class Config:
        from_attributes = True

    @computed_field
    @property
    def computed_variance_days(self) -> int:
        return aggregation.variance_days(self.planned_finish, self.projected_finish)

    @computed_field
    @property
    def variance_class(self) -> str:
        return aggregation.variance_class(self.finish_variance_days)


class TowerFinishPage(BaseModel):
    items: List[TowerFinishResponse]
    page: int
    page_size: int
    total: int
    total_pages: int


# ---------- Steel stock ----------
class SteelStockCreate(BaseModel):
    dia: str
    total_received: float = Field(default=0, ge=0)
    stock_at_site: float = Field(default=0, ge=0)
    consumed: float = Field(default=0, ge=0)

    @field_validator("dia")
    @classmethod
    def check_dia(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Please enter the Steel Diameter (Dia).")
        return v.strip()


class SteelStockResponse(BaseModel):
    sr_no: int
    dia: str
    total_received: float
    stock_at_site: float
    consumed: float

    class Config:
        from_attributes = True


class SteelStockTotals(BaseModel):
    total_received: float
    stock_at_site: float
    consumed: float


class SteelStockReport(BaseModel):
    records: List[SteelStockResponse]
    totals: SteelStockTotals


# ---------- Non-negotiables ----------
class NonNegotiableCreate(BaseModel):
    tower: str
    task_description: str
    is_completed: bool = False

    @field_validator("tower", "task_description")
    @classmethod
    def check_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Tower/Area and Task Description are required.")
        return v.strip()


class NonNegotiableResponse(BaseModel):
    id: int
    tower: str
    task_description: str
    is_completed: bool

    class Config:
        from_attributes = True


# ---------- Critical issues ----------
def split_category(category: Optional[str]):
    """Map a stored category back to the (option, custom text) pair of the entry form."""
    if category in CRITICAL_ISSUE_CATEGORIES:
        return category, ""
    if not category:
        return "", ""
    return "Other", category


class CriticalIssueCreate(BaseModel):
    issue_description: str
    category: str = ""
    custom_category: str = ""

    @field_validator("issue_description")
    @classmethod
    def check_description(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Issue Description is required.")
        return v.strip()

    @model_validator(mode="after")
    def resolve_category(self):
        category = (self.category or "").strip()
        if not category:
            raise ValueError("Please select a category.")
        if category not in CRITICAL_ISSUE_CATEGORIES:
            raise ValueError(f"Category must be one of {', '.join(CRITICAL_ISSUE_CATEGORIES)}")
        if category == "Other" and not (self.custom_category or "").strip():
            raise ValueError("Please enter a custom category or select an existing one.")
        return self

    def final_category(self) -> str:
        if self.category.strip() == "Other":
            return self.custom_category.strip()
        return self.category.strip()


class CriticalIssueResponse(BaseModel):
    id: int
    issue_description: str
    category: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def category_option(self) -> str:
        return split_category(self.category)[0]

    @computed_field
    @property
    def custom_category(self) -> str:
        return split_category(self.category)[1]


class CriticalIssuePage(BaseModel):
    items: List[CriticalIssueResponse]
    page: int
    page_size: int
    total: int
    total_pages: int
