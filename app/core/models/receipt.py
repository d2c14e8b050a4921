from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.db.session import Base


class Receipt(Base):
    """Receipt issued for a payment. Rendering happens outside this service."""

    __tablename__ = "receipts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    receipt_number = Column(String(50), nullable=True, index=True)
    pdf_url = Column(String(500), nullable=True)
