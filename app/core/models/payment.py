"""Payment: immutable record of money received. Corrections are new adjustment rows."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.enums import PaymentKind
from app.core.models._common import utcnow
from app.db.session import Base


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_school_student", "school_id", "student_id"),
        Index("ix_payments_school_fee", "school_id", "fee_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="RESTRICT"), nullable=False)
    fee_id = Column(Integer, ForeignKey("fees.id", ondelete="RESTRICT"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # signed for adjustments
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    payment_method = Column(String(50), nullable=False)
    installment_number = Column(Integer, nullable=True)
    kind = Column(String(20), nullable=False, default=PaymentKind.payment.value)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    student = relationship("Student")
    fee = relationship("Fee")
