"""Schools router: administrative create / update / status toggle."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import SchoolStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import SchoolCreate, SchoolResponse, SchoolStatusUpdate, SchoolUpdate
from . import service

router = APIRouter(prefix="/api/v1/schools", tags=["schools"])


@router.post("", response_model=SchoolResponse, status_code=status.HTTP_201_CREATED)
async def create_school(
    payload: SchoolCreate,
    db: AsyncSession = Depends(get_db),
) -> SchoolResponse:
    try:
        return await service.create_school(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[SchoolResponse])
async def list_schools(
    school_status: Optional[SchoolStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> List[SchoolResponse]:
    return await service.list_schools(db, school_status)


@router.get("/{school_id}", response_model=SchoolResponse)
async def get_school(
    school_id: int,
    db: AsyncSession = Depends(get_db),
) -> SchoolResponse:
    try:
        return await service.get_school(db, school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{school_id}", response_model=SchoolResponse)
async def update_school(
    school_id: int,
    payload: SchoolUpdate,
    db: AsyncSession = Depends(get_db),
) -> SchoolResponse:
    try:
        return await service.update_school(db, school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{school_id}/status", response_model=SchoolResponse)
async def set_school_status(
    school_id: int,
    payload: SchoolStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> SchoolResponse:
    try:
        return await service.set_school_status(db, school_id, payload.status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
