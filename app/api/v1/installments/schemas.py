"""Installments schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.api.v1.payments.schemas import PaymentResponse
from app.core.enums import InstallmentStatus


class InstallmentResponse(BaseModel):
    id: int
    fee_id: int
    student_id: int
    school_id: int
    number: int
    amount: Decimal
    due_date: date
    status: InstallmentStatus
    paid_amount: Optional[Decimal] = None
    paid_date: Optional[datetime] = None
    remaining: Decimal
    overdue: bool
    created_at: datetime
    updated_at: datetime


class InstallmentPaymentCreate(BaseModel):
    # Range checks live in the installment state machine so they apply to every caller.
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    payment_method: str = Field("cash", min_length=1, max_length=50)
    date: Optional[datetime] = None
    notes: Optional[str] = None


class InstallmentAdjustmentCreate(BaseModel):
    """Signed correction of the paid amount; recorded as an adjustment payment."""

    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    notes: str = Field(..., min_length=1, description="Reason for the correction")
    payment_method: str = Field("adjustment", min_length=1, max_length=50)


class InstallmentPaymentResponse(BaseModel):
    installment: InstallmentResponse
    payment: PaymentResponse
