"""
Sync context: the explicit owner of connectivity and replay state for a session.

Lifecycle: initialized -> (start) waiting -> (activate) active -> (teardown) torn_down.
start() registers the interception layer once and builds the remote client;
activate() starts the connectivity monitor. A foreground "SKIP_WAITING" message
activates a context that is still waiting.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import Settings
from app.core.enums import ContextState
from app.core.exceptions import ContextStateError, LedgerValidationError
from app.sync.connectivity import ConnectivityMonitor
from app.sync.interception import HeldRequestQueue, InterceptingTransport
from app.sync.queue import SyncQueueManager
from app.sync.remote import RemoteClient
from app.sync.worker import ReplayWorker

logger = logging.getLogger(__name__)

SKIP_WAITING = "SKIP_WAITING"


class SyncContext:
    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self._inner_transport = transport
        self.state = ContextState.INITIALIZED
        self._held_queue: Optional[HeldRequestQueue] = None
        self._remote: Optional[RemoteClient] = None
        self._monitor: Optional[ConnectivityMonitor] = None
        self._worker: Optional[ReplayWorker] = None

    # --- Components ---
    def _require_started(self) -> None:
        if self.state in (ContextState.INITIALIZED, ContextState.TORN_DOWN):
            raise ContextStateError(f"Sync context is {self.state.value}")

    @property
    def held_queue(self) -> HeldRequestQueue:
        self._require_started()
        return self._held_queue

    @property
    def remote(self) -> RemoteClient:
        self._require_started()
        return self._remote

    @property
    def monitor(self) -> ConnectivityMonitor:
        self._require_started()
        return self._monitor

    @property
    def worker(self) -> ReplayWorker:
        self._require_started()
        return self._worker

    # --- Lifecycle ---
    async def start(self) -> None:
        if self.state != ContextState.INITIALIZED:
            raise ContextStateError(f"Cannot start a sync context that is {self.state.value}")
        s = self.settings
        self._held_queue = HeldRequestQueue(self.session_factory, retention_minutes=s.replay_retention_minutes)
        self._remote = RemoteClient(
            s.remote_base_url,
            api_key=s.remote_api_key,
            timeout=s.remote_timeout_seconds,
            transport=InterceptingTransport(self._held_queue, self._inner_transport),
        )
        self._worker = ReplayWorker(self.session_factory, self._remote, self._held_queue)
        self._monitor = ConnectivityMonitor(self._remote.probe, check_interval=s.connectivity_check_interval_seconds)
        self._monitor.on_change(self._worker.on_connectivity_change)
        self._monitor.on_still_online(self._worker.on_still_online)
        self.state = ContextState.WAITING
        logger.info("Sync context registered (remote=%s)", s.remote_base_url)
        if s.sync_auto_activate:
            await self.activate()

    async def activate(self) -> None:
        if self.state == ContextState.ACTIVE:
            return
        self._require_started()
        self._monitor.start()
        self.state = ContextState.ACTIVE
        logger.info("Sync context active")

    async def handle_message(self, message: Dict[str, Any]) -> ContextState:
        """Foreground control channel. Only SKIP_WAITING is understood."""
        if message.get("type") != SKIP_WAITING:
            raise LedgerValidationError(f"Unsupported message type '{message.get('type')}'")
        await self.activate()
        return self.state

    async def teardown(self) -> None:
        if self.state == ContextState.TORN_DOWN:
            return
        if self._monitor is not None:
            await self._monitor.stop()
        if self._remote is not None:
            await self._remote.aclose()
        self.state = ContextState.TORN_DOWN
        logger.info("Sync context torn down")

    # --- Reporting ---
    async def status(self) -> Dict[str, Any]:
        self._require_started()
        async with self.session_factory() as db:
            queue = SyncQueueManager(db)
            pending = await queue.pending_count()
            last_synced_at = await queue.last_synced_at()
        return {
            "context_state": self.state,
            "online": self._monitor.is_online,
            "sync_status": self._worker.status,
            "pending_syncs": pending,
            "held_requests": await self._held_queue.count(),
            "lost_writes": await self._held_queue.lost_write_count(),
            "last_sync_at": self._worker.last_sync_at or last_synced_at,
            "last_error": self._worker.last_error,
        }
