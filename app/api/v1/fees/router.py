"""Fees router: create with installment fan-out, list, get, update, delete."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_school_id
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import FeeCreate, FeeResponse, FeeUpdate, FeeWriteResponse
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


@router.post("", response_model=FeeWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_fee(
    payload: FeeCreate,
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> FeeWriteResponse:
    try:
        return await service.create_fee(db, school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[FeeResponse])
async def list_fees(
    grade: Optional[str] = Query(None),
    student_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> List[FeeResponse]:
    return await service.list_fees(db, school_id, grade=grade, student_id=student_id)


@router.get("/{fee_id}", response_model=FeeResponse)
async def get_fee(
    fee_id: int,
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> FeeResponse:
    try:
        return await service.get_fee(db, school_id, fee_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{fee_id}", response_model=FeeWriteResponse)
async def update_fee(
    fee_id: int,
    payload: FeeUpdate,
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> FeeWriteResponse:
    try:
        return await service.update_fee(db, school_id, fee_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{fee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fee(
    fee_id: int,
    db: AsyncSession = Depends(get_db),
    school_id: int = Depends(get_school_id),
) -> None:
    try:
        await service.delete_fee(db, school_id, fee_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
