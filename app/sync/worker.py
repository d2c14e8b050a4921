"""
Replay worker: the single consumer of both the sync queue and the held-request queue.

Passes are serialized by one lock and always run in the same order:

1. drop held requests past the retention window (reported as lost writes);
2. replay held requests FIFO, stopping on the first failure;
3. drain the sync queue in insertion order.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.enums import ConnectionState, SyncStatus
from app.core.exceptions import RemoteSyncError, RemoteUnavailableError, ServiceError
from app.sync.interception import HeldRequestQueue, ReplayResult
from app.sync.queue import DrainResult, SyncQueueManager, now_ms
from app.sync.remote import RemoteClient

logger = logging.getLogger(__name__)

HEARTBEAT_TABLE = "sync_logs"


@dataclass
class PassResult:
    expired: int = 0
    held: ReplayResult = field(default_factory=ReplayResult)
    drain: DrainResult = field(default_factory=DrainResult)

    @property
    def ok(self) -> bool:
        return self.drain.ok and not self.held.stopped


class ReplayWorker:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        remote: RemoteClient,
        held_queue: HeldRequestQueue,
    ) -> None:
        self._session_factory = session_factory
        self._remote = remote
        self._held_queue = held_queue
        self._lock = asyncio.Lock()
        self.status = SyncStatus.idle
        self.last_sync_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.last_result: Optional[PassResult] = None

    async def on_connectivity_change(self, state: ConnectionState) -> None:
        if state == ConnectionState.ONLINE:
            await self.run_pass()

    async def on_still_online(self, state: ConnectionState) -> None:
        """Periodic pass while online, so writes made without an outage still reach the remote."""
        if state == ConnectionState.ONLINE and await self.has_work():
            await self.run_pass()

    async def has_work(self) -> bool:
        if await self._held_queue.count():
            return True
        async with self._session_factory() as db:
            return await SyncQueueManager(db).pending_count() > 0

    async def run_pass(self) -> PassResult:
        """One replay pass. Concurrent callers wait for the pass in progress, then run their own."""
        async with self._lock:
            self.status = SyncStatus.syncing
            result = PassResult()
            try:
                result.expired = len(await self._held_queue.expire())
                result.held = await self._held_queue.replay(self._remote.send)
                async with self._session_factory() as db:
                    result.drain = await SyncQueueManager(db).drain(self._remote)
            except ServiceError as e:
                self.status = SyncStatus.error
                self.last_error = e.message
                logger.error("Replay pass aborted: %s", e.message)
                raise
            except Exception as e:
                self.status = SyncStatus.error
                self.last_error = str(e) or e.__class__.__name__
                logger.exception("Replay pass aborted by unexpected error")
                raise

            if result.drain.synced:
                self.last_sync_at = datetime.now(timezone.utc)
                await self._heartbeat(result.drain)

            if result.ok:
                self.status = SyncStatus.idle
                self.last_error = None
            else:
                self.status = SyncStatus.error
                self.last_error = (result.held.failures or ["some entries failed to sync"])[-1]
            self.last_result = result
            return result

    async def _heartbeat(self, drain: DrainResult) -> None:
        """Network-dependent write; failures are held by the interception layer."""
        row = {"timestamp": now_ms(), "count": drain.synced, "entities": dict(drain.by_entity)}
        try:
            await self._remote.insert(HEARTBEAT_TABLE, row)
        except (RemoteUnavailableError, RemoteSyncError) as e:
            logger.warning("Sync heartbeat not delivered: %s", e.message)
