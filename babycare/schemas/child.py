import uuid
from datetime import date
from typing import Literal, Optional, Tuple
from pydantic import Field, field_validator

from babycare.core.timezone import now_canonical
from babycare.schemas.base import BaseSchema, DocumentSchema, canonical_instant

Gender = Literal["male", "female", "other"]

class Child(DocumentSchema):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    gender: Optional[Gender] = None
    notes: str = ""
    photo: Optional[str] = Field(None, description="Opaque photo blob, typically a data URL")
    created_at: str = Field(default_factory=now_canonical)

    @field_validator('id', mode='before')
    @classmethod
    def id_to_str(cls, v):
        # Legacy exports used integer child ids
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('created_at', mode='before')
    @classmethod
    def created_at_canonical(cls, v):
        return canonical_instant(v)

    def age_on(self, today: date) -> Tuple[int, int]:
        """Age as (whole months, remaining days) on ``today``."""
        if today < self.date_of_birth:
            return 0, 0
        months = (today.year - self.date_of_birth.year) * 12 + (today.month - self.date_of_birth.month)
        if today.day < self.date_of_birth.day:
            months -= 1
        anchor_year = self.date_of_birth.year + (self.date_of_birth.month - 1 + months) // 12
        anchor_month = (self.date_of_birth.month - 1 + months) % 12 + 1
        anchor_day = min(self.date_of_birth.day, _days_in_month(anchor_year, anchor_month))
        days = (today - date(anchor_year, anchor_month, anchor_day)).days
        return months, days

def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        return 31
    return (date(year, month + 1, 1) - date(year, month, 1)).days

class ChildCreate(BaseSchema):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: str  # Date string in YYYY-MM-DD format
    gender: Optional[Gender] = None
    notes: str = ""
    photo: Optional[str] = None

class ChildResponse(BaseSchema):
    id: str
    name: str
    date_of_birth: str
    gender: Optional[str] = None
    notes: str = ""
    photo: Optional[str] = None
    age_months: int
    age_days: int
    created_at: str  # Localized display string
