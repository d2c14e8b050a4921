"""Fee: billable charge; template for installments when installments > 1."""

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.models._common import utcnow
from app.db.session import Base


class Fee(Base):
    """
    Charge for a whole grade (student_id NULL) or for one student.
    Installments are generated per targeted student when installments > 1.
    """

    __tablename__ = "fees"
    __table_args__ = (
        Index("ix_fees_school_grade", "school_id", "grade"),
        CheckConstraint("installments >= 1", name="chk_fee_installments"),
        CheckConstraint("amount > 0", name="chk_fee_amount"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    grade = Column(String(50), nullable=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="SET NULL"), nullable=True, index=True)
    installments = Column(Integer, nullable=False, default=1)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    school = relationship("School")
    student = relationship("Student", foreign_keys=[student_id])
