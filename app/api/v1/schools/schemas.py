"""Schools schemas."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import SchoolStatus


class SchoolCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    logo: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    status: SchoolStatus = SchoolStatus.active
    subscription_start: Optional[date] = None
    subscription_end: Optional[date] = None


class SchoolUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    logo: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    subscription_start: Optional[date] = None
    subscription_end: Optional[date] = None


class SchoolStatusUpdate(BaseModel):
    status: SchoolStatus


class SchoolResponse(BaseModel):
    id: int
    name: str
    logo: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    status: SchoolStatus
    subscription_start: Optional[date] = None
    subscription_end: Optional[date] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
