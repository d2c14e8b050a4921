"""Installments router: list, get, record payment, record adjustment."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_school_id
from app.core.enums import InstallmentStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    InstallmentAdjustmentCreate,
    InstallmentPaymentCreate,
    InstallmentPaymentResponse,
    InstallmentResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/installments", tags=["installments"])


@router.get("", response_model=List[InstallmentResponse])
async def list_installments(
    student_id: Optional[int] = Query(None),
    fee_id: Optional[int] = Query(None),
    installment_status: Optional[InstallmentStatus] = Query(None, alias="status"),
    overdue: Optional[bool] = Query(None, description="Only overdue (true) or not overdue (false)"),
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> List[InstallmentResponse]:
    return await service.list_installments(
        db,
        school_id,
        student_id=student_id,
        fee_id=fee_id,
        status_filter=installment_status,
        overdue=overdue,
    )


@router.get("/{installment_id}", response_model=InstallmentResponse)
async def get_installment(
    installment_id: int,
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> InstallmentResponse:
    try:
        return await service.get_installment(db, school_id, installment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{installment_id}/payments",
    response_model=InstallmentPaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_installment_payment(
    installment_id: int,
    payload: InstallmentPaymentCreate,
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> InstallmentPaymentResponse:
    try:
        return await service.record_installment_payment(db, school_id, installment_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{installment_id}/adjustments",
    response_model=InstallmentPaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_adjustment(
    installment_id: int,
    payload: InstallmentAdjustmentCreate,
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> InstallmentPaymentResponse:
    try:
        return await service.record_adjustment(db, school_id, installment_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
