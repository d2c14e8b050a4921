"""Sync queue: append-only log of local mutations, doubling as the replay source."""

from sqlalchemy import JSON, BigInteger, Column, DateTime, Integer, String, Text

from app.core.enums import SyncState
from app.db.session import Base


class SyncQueueEntry(Base):
    """
    One local mutation awaiting (or done with) remote replay.
    Only state, synced_at and the attempt diagnostics ever change; rows are never deleted.
    """

    __tablename__ = "sync_queue"

    id = Column(Integer, primary_key=True, autoincrement=True)
    operation = Column(String(10), nullable=False, index=True)  # create, update, delete
    entity = Column(String(30), nullable=False, index=True)
    entity_id = Column(Integer, nullable=True, index=True)
    data = Column(JSON, nullable=False)
    timestamp = Column(BigInteger, nullable=False, index=True)  # epoch ms
    state = Column(String(10), nullable=False, default=SyncState.PENDING.value, index=True)
    synced_at = Column(DateTime(timezone=True), nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
