"""Sync router: status, queue inspection, manual drain, held requests, connectivity and context messages."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_sync_context
from app.core.context import SyncContext
from app.core.enums import SyncState
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    ConnectivityReport,
    ConnectivityResponse,
    ContextMessage,
    ContextMessageResponse,
    DrainResponse,
    HeldRequestResponse,
    SyncQueueItem,
    SyncStatusResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


@router.get("/status", response_model=SyncStatusResponse)
async def get_status(ctx: SyncContext = Depends(get_sync_context)) -> SyncStatusResponse:
    try:
        return await service.get_status(ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/queue", response_model=List[SyncQueueItem])
async def list_queue(
    state: Optional[SyncState] = Query(None, description="pending or synced"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> List[SyncQueueItem]:
    return await service.list_queue(db, state=state, limit=limit, offset=offset)


@router.post("/drain", response_model=DrainResponse)
async def drain_now(ctx: SyncContext = Depends(get_sync_context)) -> DrainResponse:
    try:
        return await service.drain_now(ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/held", response_model=List[HeldRequestResponse])
async def list_held(ctx: SyncContext = Depends(get_sync_context)) -> List[HeldRequestResponse]:
    try:
        return await service.list_held(ctx)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/connectivity", response_model=ConnectivityResponse)
async def report_connectivity(
    payload: ConnectivityReport,
    ctx: SyncContext = Depends(get_sync_context),
) -> ConnectivityResponse:
    try:
        return await service.report_connectivity(ctx, payload.online)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/messages", response_model=ContextMessageResponse)
async def handle_message(
    payload: ContextMessage,
    ctx: SyncContext = Depends(get_sync_context),
) -> ContextMessageResponse:
    try:
        return await service.handle_message(ctx, payload.type)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
