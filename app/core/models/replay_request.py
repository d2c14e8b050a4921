"""Held request: a mutating HTTP request that failed at the network level, kept for replay."""

from sqlalchemy import JSON, BigInteger, Column, Integer, LargeBinary, String, Text

from app.db.session import Base


class HeldRequest(Base):
    """FIFO by id. Dropped once older than the retention window (first_failed_at based)."""

    __tablename__ = "replay_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    method = Column(String(10), nullable=False)
    url = Column(String(2000), nullable=False)
    headers = Column(JSON, nullable=False)
    body = Column(LargeBinary, nullable=True)
    first_failed_at = Column(BigInteger, nullable=False, index=True)  # epoch ms
    attempts = Column(Integer, nullable=False, default=1)
    last_error = Column(Text, nullable=True)
