"""Installment: one billing unit of a fee for one student. Mutated only by payment recording."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.core.enums import InstallmentStatus
from app.core.models._common import utcnow
from app.db.session import Base


class Installment(Base):
    """
    status is a pure function of (paid_amount, amount):
    unpaid when paid_amount is NULL or 0, partial when 0 < paid_amount < amount, paid otherwise.
    Overdue is derived on read and never stored.
    """

    __tablename__ = "installments"
    __table_args__ = (
        UniqueConstraint("fee_id", "student_id", "number", name="uq_installments_fee_student_number"),
        Index("ix_installments_school_student", "school_id", "student_id"),
        CheckConstraint(
            "status IN ('unpaid','partial','paid')",
            name="chk_installment_status",
        ),
        CheckConstraint(
            "paid_amount IS NULL OR (paid_amount >= 0 AND paid_amount <= amount)",
            name="chk_installment_paid_amount",
        ),
        CheckConstraint("number >= 1", name="chk_installment_number"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    fee_id = Column(Integer, ForeignKey("fees.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    number = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=InstallmentStatus.unpaid.value, index=True)
    paid_amount = Column(Numeric(12, 2), nullable=True)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    fee = relationship("Fee")
    student = relationship("Student")
