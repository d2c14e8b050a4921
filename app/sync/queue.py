"""
Sync queue manager: durable, ordered, append-only log of local mutations.

enqueue() joins the caller's transaction, so an entity write and its queue entry
commit together. drain() replays pending entries in insertion order with
at-least-once semantics: each entry is committed as synced right after its remote
call succeeds, so an interrupted pass leaves only the unsent remainder pending.
"""

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import SyncEntity, SyncOperation, SyncState
from app.core.exceptions import LedgerValidationError, RemoteSyncError, RemoteUnavailableError
from app.core.models import SyncLog, SyncQueueEntry
from app.sync.remote import REPLAY_SYNC_QUEUE, RemoteClient

logger = logging.getLogger(__name__)

ALL_ENTITIES = "all"

# Snapshot fields that point at a parent row. A child is never replayed ahead of
# a parent whose entry was rejected in the same pass.
REFERENCE_FIELDS = {
    "school_id": SyncEntity.SCHOOL.value,
    "student_id": SyncEntity.STUDENT.value,
    "fee_id": SyncEntity.FEE.value,
}


def now_ms() -> int:
    return int(time.time() * 1000)


def _references(entry: SyncQueueEntry) -> List[Tuple[str, Any]]:
    data = entry.data or {}
    return [(entity, data[name]) for name, entity in REFERENCE_FIELDS.items() if data.get(name) is not None]


@dataclass
class DrainResult:
    synced: int = 0
    failed: int = 0
    skipped: int = 0
    # True when the remote became unreachable mid-pass; the remainder stays pending.
    interrupted: bool = False
    by_entity: Counter = field(default_factory=Counter)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.interrupted


class SyncQueueManager:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def enqueue(
        self,
        operation: SyncOperation,
        entity: SyncEntity,
        entity_id: Optional[int],
        data: Dict[str, Any],
        timestamp: Optional[int] = None,
    ) -> SyncQueueEntry:
        """Append a pending entry. Flushed, not committed: the caller owns the transaction."""
        entry = SyncQueueEntry(
            operation=SyncOperation(operation).value,
            entity=SyncEntity(entity).value,
            entity_id=entity_id,
            data=data,
            timestamp=timestamp if timestamp is not None else now_ms(),
            state=SyncState.PENDING.value,
            attempts=0,
        )
        self._db.add(entry)
        await self._db.flush()
        return entry

    async def pending(self) -> List[SyncQueueEntry]:
        result = await self._db.execute(
            select(SyncQueueEntry)
            .where(SyncQueueEntry.state == SyncState.PENDING.value)
            .order_by(SyncQueueEntry.id)
        )
        return list(result.scalars().all())

    async def pending_count(self) -> int:
        result = await self._db.execute(
            select(func.count(SyncQueueEntry.id)).where(SyncQueueEntry.state == SyncState.PENDING.value)
        )
        return int(result.scalar() or 0)

    async def list_entries(
        self,
        state: Optional[SyncState] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[SyncQueueEntry]:
        stmt = select(SyncQueueEntry)
        if state is not None:
            stmt = stmt.where(SyncQueueEntry.state == state.value)
        stmt = stmt.order_by(SyncQueueEntry.id).offset(offset).limit(limit)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def last_synced_at(self) -> Optional[datetime]:
        result = await self._db.execute(
            select(func.max(SyncQueueEntry.synced_at)).where(SyncQueueEntry.state == SyncState.SYNCED.value)
        )
        return result.scalar()

    async def mark_synced(self, entry: SyncQueueEntry, synced_at: Optional[datetime] = None) -> None:
        entry.state = SyncState.SYNCED.value
        entry.synced_at = synced_at or datetime.now(timezone.utc)
        entry.last_error = None
        await self._db.commit()

    async def _mark_failed(self, entry: SyncQueueEntry, message: str) -> None:
        entry.attempts = (entry.attempts or 0) + 1
        entry.last_error = message
        await self._db.commit()

    async def drain(self, remote: RemoteClient) -> DrainResult:
        """
        Replay every pending entry against the remote, in insertion order.

        An error response fails that entry only; later entries for the same
        (entity, entity_id), and entries whose snapshot references it through
        school_id, student_id or fee_id, are skipped for this pass so they are
        never applied ahead of it. Skipping is transitive. A network failure
        stops the pass.
        """
        entries = await self.pending()
        result = DrainResult()
        if not entries:
            return result
        logger.info("Draining %d pending sync entries", len(entries))

        blocked: Set[Tuple[str, int]] = set()
        for entry in entries:
            key = (entry.entity, entry.entity_id)
            if entry.entity_id is not None and key in blocked:
                result.skipped += 1
                continue
            parent = next((ref for ref in _references(entry) if ref in blocked), None)
            if parent is not None:
                if entry.entity_id is not None:
                    blocked.add(key)
                result.skipped += 1
                logger.warning(
                    "Sync entry %s (%s %s #%s) held back: %s #%s was rejected",
                    entry.id, entry.operation, entry.entity, entry.entity_id, parent[0], parent[1],
                )
                continue
            try:
                await remote.apply(
                    entry.operation,
                    entry.entity,
                    entry.entity_id,
                    entry.data,
                    replay=REPLAY_SYNC_QUEUE,
                )
            except RemoteUnavailableError as e:
                await self._mark_failed(entry, e.message)
                result.interrupted = True
                logger.warning("Remote unreachable during drain at entry %s: %s", entry.id, e.message)
                break
            except (RemoteSyncError, LedgerValidationError) as e:
                await self._mark_failed(entry, e.message)
                if entry.entity_id is not None:
                    blocked.add(key)
                result.failed += 1
                logger.warning(
                    "Sync entry %s (%s %s #%s) rejected: %s",
                    entry.id, entry.operation, entry.entity, entry.entity_id, e.message,
                )
                continue
            await self.mark_synced(entry)
            result.synced += 1
            result.by_entity[entry.entity] += 1

        await self._log_pass(result)
        logger.info(
            "Drain finished: synced=%d failed=%d skipped=%d interrupted=%s",
            result.synced, result.failed, result.skipped, result.interrupted,
        )
        return result

    async def _log_pass(self, result: DrainResult) -> None:
        stamp = now_ms()
        for entity, count in result.by_entity.items():
            self._db.add(SyncLog(entity=entity, timestamp=stamp, count=count))
        self._db.add(SyncLog(entity=ALL_ENTITIES, timestamp=stamp, count=result.synced))
        await self._db.commit()
