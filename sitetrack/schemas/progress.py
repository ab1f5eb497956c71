from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class WeeklyEntry(BaseModel):
    """One week of planned and/or actual figures for a tower (concrete m3 or manpower headcount)."""

    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    week: int = Field(ge=1, le=5)
    tower: str
    planned: Optional[float] = Field(default=None, ge=0)
    actual: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_values(self):
        if self.planned is None and self.actual is None:
            raise ValueError("Enter a planned or an actual value")
        return self


class MonthlyEntry(BaseModel):
    """One month of planned and/or actual cashflow (Cr.)."""

    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    planned: Optional[float] = None
    actual: Optional[float] = None

    @model_validator(mode="after")
    def check_values(self):
        if self.planned is None and self.actual is None:
            raise ValueError("Enter a planned or an actual value")
        return self


class WeeklyPlanRow(BaseModel):
    id: int
    year: int
    month: int
    week: int
    tower: str
    planned: float

    class Config:
        from_attributes = True


class WeeklyActualRow(BaseModel):
    id: int
    year: int
    month: int
    week: int
    tower: str
    actual: float

    class Config:
        from_attributes = True


class MonthlyPlanRow(BaseModel):
    id: int
    year: int
    month: int
    planned: Optional[float] = None

    class Config:
        from_attributes = True


class MonthlyActualRow(BaseModel):
    id: int
    year: int
    month: int
    actual: Optional[float] = None

    class Config:
        from_attributes = True


class EntryResult(BaseModel):
    plan: Optional[Dict[str, Any]] = None
    actual: Optional[Dict[str, Any]] = None
    updated: bool


class WeeklyView(BaseModel):
    year: int
    month: int
    tower: str
    plan: List[WeeklyPlanRow]
    actual: List[WeeklyActualRow]
    monthly_planned: float
    monthly_actual: float
    cumulative_planned: float
    cumulative_actual: float
