"""
Interception layer for network-dependent writes.

InterceptingTransport sits in front of the remote client's real transport. A
mutating request that fails at the network level is persisted to the held-request
queue before the error propagates to the caller. Held requests are replayed FIFO
on connectivity recovery; the first failure puts the batch on hold again so
financial writes are never reordered. Requests older than the retention window
are dropped and reported as lost writes.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

import httpx
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.exceptions import RemoteUnavailableError
from app.core.models import LOST_WRITE_ENTITY, HeldRequest, SyncLog
from app.sync.remote import REPLAY_HEADER, REPLAY_HELD

logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
# Recomputed by httpx when the request is rebuilt.
_DROPPED_HEADERS = frozenset({"content-length", "host", "transfer-encoding", REPLAY_HEADER.lower()})


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ReplayResult:
    replayed: int = 0
    rejected: int = 0
    # True when a request failed and the remainder of the batch was left in place.
    stopped: bool = False
    remaining: int = 0
    failures: List[str] = field(default_factory=list)


class HeldRequestQueue:
    """Durable FIFO of failed mutating requests with a bounded retention window."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        retention_minutes: int = 24 * 60,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._session_factory = session_factory
        self.retention_ms = retention_minutes * 60 * 1000
        self._clock = clock

    async def hold(self, request: httpx.Request, error: str) -> HeldRequest:
        await request.aread()
        headers = {k: v for k, v in request.headers.items() if k.lower() not in _DROPPED_HEADERS}
        async with self._session_factory() as db:
            held = HeldRequest(
                method=request.method,
                url=str(request.url),
                headers=headers,
                body=request.content or None,
                first_failed_at=self._clock(),
                attempts=1,
                last_error=error,
            )
            db.add(held)
            await db.commit()
            await db.refresh(held)
        logger.warning("Holding failed %s %s for replay (id=%s): %s", held.method, held.url, held.id, error)
        return held

    async def list_held(self) -> List[HeldRequest]:
        async with self._session_factory() as db:
            result = await db.execute(select(HeldRequest).order_by(HeldRequest.id))
            return list(result.scalars().all())

    async def count(self) -> int:
        async with self._session_factory() as db:
            result = await db.execute(select(func.count(HeldRequest.id)))
            return int(result.scalar() or 0)

    async def lost_write_count(self) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                select(func.coalesce(func.sum(SyncLog.count), 0)).where(SyncLog.entity == LOST_WRITE_ENTITY)
            )
            return int(result.scalar() or 0)

    async def expire(self) -> List[HeldRequest]:
        """Drop requests held longer than the retention window; each drop is a reported lost write."""
        cutoff = self._clock() - self.retention_ms
        async with self._session_factory() as db:
            result = await db.execute(
                select(HeldRequest).where(HeldRequest.first_failed_at < cutoff).order_by(HeldRequest.id)
            )
            expired = list(result.scalars().all())
            if not expired:
                return []
            for held in expired:
                logger.warning(
                    "Lost write: %s %s held since %s exceeded the retention window and was dropped",
                    held.method, held.url, held.first_failed_at,
                )
                await db.delete(held)
            db.add(SyncLog(entity=LOST_WRITE_ENTITY, timestamp=self._clock(), count=len(expired)))
            await db.commit()
        return expired

    async def replay(self, send: Callable[[httpx.Request], Awaitable[httpx.Response]]) -> ReplayResult:
        """
        Replay held requests oldest first.

        A network failure or 5xx response stops the batch and leaves that request at the
        front. A 4xx response means the remote refused the write: it is removed and logged.
        """
        result = ReplayResult()
        async with self._session_factory() as db:
            rows = await db.execute(select(HeldRequest).order_by(HeldRequest.id))
            held_requests = list(rows.scalars().all())
            for index, held in enumerate(held_requests):
                headers: Dict[str, str] = dict(held.headers or {})
                headers[REPLAY_HEADER] = REPLAY_HELD
                request = httpx.Request(held.method, held.url, headers=headers, content=held.body)
                error: Optional[str] = None
                try:
                    response = await send(request)
                except RemoteUnavailableError as e:
                    error = e.message
                else:
                    if response.status_code >= 500:
                        error = f"remote answered {response.status_code}"
                    elif response.is_error:
                        result.rejected += 1
                        logger.error(
                            "Held %s %s rejected by remote with %s; dropping",
                            held.method, held.url, response.status_code,
                        )
                        await db.delete(held)
                        await db.commit()
                        continue

                if error is not None:
                    held.attempts = (held.attempts or 0) + 1
                    held.last_error = error
                    await db.commit()
                    result.stopped = True
                    result.failures.append(error)
                    result.remaining = len(held_requests) - index
                    logger.warning("Replay of held request %s failed, stopping batch: %s", held.id, error)
                    return result

                await db.delete(held)
                await db.commit()
                result.replayed += 1
        return result


class InterceptingTransport(httpx.AsyncBaseTransport):
    """httpx transport that holds mutating requests failing at the network level."""

    def __init__(self, queue: HeldRequestQueue, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._queue = queue
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.method not in MUTATING_METHODS or REPLAY_HEADER in request.headers:
            return await self._transport.handle_async_request(request)
        try:
            return await self._transport.handle_async_request(request)
        except httpx.TransportError as e:
            await self._queue.hold(request, f"{e.__class__.__name__}: {e}")
            raise

    async def aclose(self) -> None:
        await self._transport.aclose()
