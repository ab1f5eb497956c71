from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


HINDRANCE_TOWERS = ["tower1", "tower2", "tower3", "tower4"]


def normalize_hindrance_tower(value: str) -> str:
    """Tab labels such as Tower1 or tower 1 map to the stored form tower1."""
    v = (value or "").strip().lower().replace(" ", "")
    if v not in HINDRANCE_TOWERS:
        raise ValueError(f"tower must be one of {', '.join(HINDRANCE_TOWERS)}")
    return v


class HindranceBase(BaseModel):
    tower: str
    sr_no: int = Field(ge=1)
    item_particulars: str
    start_from: Optional[date] = None
    resolved_on: Optional[date] = None
    period_in_days: Optional[int] = None
    reason_shortfall: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("tower")
    @classmethod
    def normalize_tower(cls, v: str) -> str:
        return normalize_hindrance_tower(v)

    @field_validator("item_particulars")
    @classmethod
    def check_text(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Item particulars are required")
        return v.strip()

    @model_validator(mode="after")
    def derive_period(self):
        if self.period_in_days is None:
            if self.start_from and self.resolved_on:
                self.period_in_days = (self.resolved_on - self.start_from).days
            else:
                self.period_in_days = 0
        return self


class HindranceCreate(HindranceBase):
    pass


class HindranceResponse(BaseModel):
    id: int
    tower: str
    sr_no: int
    item_particulars: str
    start_from: Optional[date] = None
    resolved_on: Optional[date] = None
    period_in_days: int
    reason_shortfall: Optional[str] = None
    remarks: Optional[str] = None

    class Config:
        from_attributes = True


class OtherInputCreate(BaseModel):
    sr_no: int = Field(ge=1)
    content: str

    @field_validator("content")
    @classmethod
    def check_text(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Content is required")
        return v


class OtherInputResponse(BaseModel):
    id: int
    sr_no: int
    content: str

    class Config:
        from_attributes = True
