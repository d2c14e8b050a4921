"""Sync schemas. Queue items use the camelCase wire format shared with the remote replay log."""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from app.core.enums import ConnectionState, ContextState, SyncStatus


class SyncStatusResponse(BaseModel):
    context_state: ContextState
    online: bool
    sync_status: SyncStatus
    pending_syncs: int
    held_requests: int
    lost_writes: int
    last_sync_at: Optional[datetime] = None
    last_error: Optional[str] = None


class SyncQueueItem(BaseModel):
    id: int
    operation: str
    entity: str
    entity_id: Optional[int] = Field(None, alias="entityId")
    data: Dict[str, Any]
    timestamp: int
    synced: Literal["yes", "no"]
    synced_at: Optional[datetime] = Field(None, alias="syncedAt")
    attempts: int = 0
    last_error: Optional[str] = Field(None, alias="lastError")

    class Config:
        populate_by_name = True


class DrainResponse(BaseModel):
    ok: bool
    expired: int
    held_replayed: int
    held_rejected: int
    held_remaining: int
    synced: int
    failed: int
    skipped: int
    interrupted: bool


class HeldRequestResponse(BaseModel):
    id: int
    method: str
    url: str
    first_failed_at: int
    attempts: int
    last_error: Optional[str] = None

    class Config:
        from_attributes = True


class ConnectivityReport(BaseModel):
    online: bool


class ConnectivityResponse(BaseModel):
    state: ConnectionState
    online: bool
    sync_status: SyncStatus


class ContextMessage(BaseModel):
    type: str = Field(..., min_length=1)


class ContextMessageResponse(BaseModel):
    context_state: ContextState
