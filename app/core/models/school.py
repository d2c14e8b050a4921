"""School (tenant): every other ledger row is scoped by school_id."""

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Integer, String

from app.core.enums import SchoolStatus
from app.core.models._common import utcnow
from app.db.session import Base


class School(Base):
    """
    Tenant of the ledger. Created by an administrator, status toggled by an administrator.
    Never hard-deleted; deactivate instead.
    """

    __tablename__ = "schools"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active','inactive','pending')",
            name="chk_school_status",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    logo = Column(String(500), nullable=True)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=SchoolStatus.active.value, index=True)
    subscription_start = Column(Date, nullable=True)
    subscription_end = Column(Date, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
