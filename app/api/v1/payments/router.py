"""Payments router: record a fee payment, payment history."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_school_id
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import PaymentCreate, PaymentResponse
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> PaymentResponse:
    try:
        return await service.record_payment(db, school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[PaymentResponse])
async def list_payments(
    student_id: Optional[int] = Query(None),
    fee_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> List[PaymentResponse]:
    return await service.list_payments(db, school_id, student_id=student_id, fee_id=fee_id)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> PaymentResponse:
    try:
        return await service.get_payment(db, school_id, payment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
