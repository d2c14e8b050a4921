from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import SyncContext
from app.core.enums import SyncState
from app.core.models import SyncQueueEntry
from app.sync.queue import SyncQueueManager

from .schemas import (
    ConnectivityResponse,
    ContextMessageResponse,
    DrainResponse,
    HeldRequestResponse,
    SyncQueueItem,
    SyncStatusResponse,
)


def _to_wire(entry: SyncQueueEntry) -> SyncQueueItem:
    return SyncQueueItem(
        id=entry.id,
        operation=entry.operation,
        entity=entry.entity,
        entity_id=entry.entity_id,
        data=entry.data or {},
        timestamp=entry.timestamp,
        synced=SyncState(entry.state).wire_value,
        synced_at=entry.synced_at,
        attempts=entry.attempts or 0,
        last_error=entry.last_error,
    )


async def get_status(ctx: SyncContext) -> SyncStatusResponse:
    return SyncStatusResponse(**await ctx.status())


async def list_queue(
    db: AsyncSession,
    state: Optional[SyncState] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[SyncQueueItem]:
    entries = await SyncQueueManager(db).list_entries(state=state, limit=limit, offset=offset)
    return [_to_wire(e) for e in entries]


async def drain_now(ctx: SyncContext) -> DrainResponse:
    """Run one replay pass immediately, regardless of the monitor's poll schedule."""
    result = await ctx.worker.run_pass()
    return DrainResponse(
        ok=result.ok,
        expired=result.expired,
        held_replayed=result.held.replayed,
        held_rejected=result.held.rejected,
        held_remaining=result.held.remaining,
        synced=result.drain.synced,
        failed=result.drain.failed,
        skipped=result.drain.skipped,
        interrupted=result.drain.interrupted,
    )


async def list_held(ctx: SyncContext) -> List[HeldRequestResponse]:
    return [HeldRequestResponse.model_validate(h) for h in await ctx.held_queue.list_held()]


async def report_connectivity(ctx: SyncContext, online: bool) -> ConnectivityResponse:
    """Platform online/offline event. Going online triggers a replay pass before returning."""
    monitor = ctx.monitor
    if online:
        await monitor.report_online()
    else:
        await monitor.report_offline()
    return ConnectivityResponse(state=monitor.state, online=monitor.is_online, sync_status=ctx.worker.status)


async def handle_message(ctx: SyncContext, message_type: str) -> ContextMessageResponse:
    state = await ctx.handle_message({"type": message_type})
    return ContextMessageResponse(context_state=state)
