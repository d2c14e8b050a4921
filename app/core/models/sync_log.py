from sqlalchemy import BigInteger, Column, Integer, String

from app.db.session import Base

# SyncLog.entity for held requests dropped after the retention window.
LOST_WRITE_ENTITY = "lost_write"


class SyncLog(Base):
    """Coarse per-entity counter of sync passes. Observability only."""

    __tablename__ = "sync_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity = Column(String(30), nullable=False, index=True)
    timestamp = Column(BigInteger, nullable=False, index=True)  # epoch ms
    count = Column(Integer, nullable=False, default=0)
