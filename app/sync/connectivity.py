"""
Connectivity monitor: online/offline state machine.

Inputs are platform events reported by the foreground (report_online / report_offline)
and an active poll that probes the remote with a trivial read every check_interval
seconds. Listeners are awaited on every transition; the replay worker registers
one to drain as soon as the state goes offline -> online, and a second one that
runs on every successful poll while already online so pending work keeps draining.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from app.core.enums import ConnectionState

logger = logging.getLogger(__name__)

Listener = Callable[[ConnectionState], Awaitable[None]]


class ConnectivityMonitor:
    def __init__(
        self,
        probe: Callable[[], Awaitable[bool]],
        check_interval: float = 30.0,
        initial_state: ConnectionState = ConnectionState.OFFLINE,
    ) -> None:
        self._probe = probe
        self._check_interval = check_interval
        self._state = initial_state
        self._listeners: List[Listener] = []
        self._poll_listeners: List[Listener] = []
        self._task: Optional[asyncio.Task] = None
        self.last_change_at: Optional[datetime] = None
        self.last_check_at: Optional[datetime] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state == ConnectionState.ONLINE

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_change(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def on_still_online(self, listener: Listener) -> None:
        """Called when a poll finds the remote reachable and the state was already online."""
        self._poll_listeners.append(listener)

    # --- Inputs ---
    async def report_online(self) -> None:
        await self._transition(ConnectionState.ONLINE)

    async def report_offline(self) -> None:
        await self._transition(ConnectionState.OFFLINE)

    async def check(self) -> ConnectionState:
        """Probe the remote once and apply the result."""
        reachable = await self._probe()
        self.last_check_at = datetime.now(timezone.utc)
        changed = await self._transition(ConnectionState.ONLINE if reachable else ConnectionState.OFFLINE)
        if reachable and not changed:
            await self._notify(self._poll_listeners, self._state)
        return self._state

    async def _transition(self, new_state: ConnectionState) -> bool:
        if new_state == self._state:
            return False
        previous, self._state = self._state, new_state
        self.last_change_at = datetime.now(timezone.utc)
        if new_state == ConnectionState.ONLINE:
            logger.info("Connectivity restored (%s -> %s)", previous.value, new_state.value)
        else:
            logger.warning("Connectivity lost (%s -> %s)", previous.value, new_state.value)
        await self._notify(self._listeners, new_state)
        return True

    async def _notify(self, listeners: List[Listener], state: ConnectionState) -> None:
        for listener in list(listeners):
            try:
                await listener(state)
            except Exception:
                # One failing listener must not stop the others or the poll loop.
                logger.exception("Connectivity listener failed on %s", state.value)

    # --- Lifecycle ---
    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="connectivity-monitor")
        logger.info("ConnectivityMonitor started (interval=%.0fs)", self._check_interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("ConnectivityMonitor stopped")

    async def _run(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self._check_interval)
