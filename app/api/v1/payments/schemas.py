from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import PaymentKind


class PaymentCreate(BaseModel):
    """General fee payment. With installment_number it is recorded against that installment."""

    student_id: int
    fee_id: int
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    payment_method: str = Field("cash", min_length=1, max_length=50)
    date: Optional[datetime] = None
    installment_number: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    school_id: int
    student_id: int
    fee_id: int
    amount: Decimal
    date: datetime
    payment_method: str
    installment_number: Optional[int] = None
    kind: PaymentKind
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
