"""Fees schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class FeeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    due_date: date
    grade: Optional[str] = Field(None, max_length=50, description="Bill every student of this grade")
    student_id: Optional[int] = Field(None, description="Bill one specific student")
    installments: int = Field(1, ge=1, le=60)
    description: Optional[str] = None

    @model_validator(mode="after")
    def validate_target(self) -> "FeeCreate":
        if self.student_id is None and not (self.grade or "").strip():
            raise ValueError("Either grade or student_id is required")
        return self


class FeeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    due_date: Optional[date] = None
    installments: Optional[int] = Field(None, ge=1, le=60)
    description: Optional[str] = None


class FeeResponse(BaseModel):
    id: int
    school_id: int
    name: str
    amount: Decimal
    due_date: date
    grade: Optional[str] = None
    student_id: Optional[int] = None
    installments: int
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeeWriteResponse(FeeResponse):
    """Fee plus the number of students whose installment schedule was (re)generated."""

    students_scheduled: int = 0
