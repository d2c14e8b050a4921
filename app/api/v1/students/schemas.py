from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import TransportationType


class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    grade: str = Field(..., min_length=1, max_length=50)
    parent_name: Optional[str] = Field(None, max_length=255)
    parent_phone: Optional[str] = Field(None, max_length=50)
    enrollment_date: Optional[date] = None
    transportation_type: TransportationType = TransportationType.NONE
    transportation_fee: Decimal = Field(Decimal("0"), ge=0)
    bus_route: Optional[str] = Field(None, max_length=255)


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    grade: Optional[str] = Field(None, min_length=1, max_length=50)
    parent_name: Optional[str] = Field(None, max_length=255)
    parent_phone: Optional[str] = Field(None, max_length=50)
    enrollment_date: Optional[date] = None
    transportation_type: Optional[TransportationType] = None
    transportation_fee: Optional[Decimal] = Field(None, ge=0)
    bus_route: Optional[str] = Field(None, max_length=255)


class StudentResponse(BaseModel):
    id: int
    school_id: int
    name: str
    grade: str
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    enrollment_date: Optional[date] = None
    transportation_type: TransportationType
    transportation_fee: Decimal
    bus_route: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
