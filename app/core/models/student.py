from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.core.enums import TransportationType
from app.core.models._common import utcnow
from app.db.session import Base


class Student(Base):
    """Student owned by exactly one school."""

    __tablename__ = "students"
    __table_args__ = (
        Index("ix_students_school_grade", "school_id", "grade"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    grade = Column(String(50), nullable=False)
    parent_name = Column(String(255), nullable=True)
    parent_phone = Column(String(50), nullable=True)
    enrollment_date = Column(Date, nullable=True)
    transportation_type = Column(String(20), nullable=False, default=TransportationType.NONE.value)
    transportation_fee = Column(Numeric(12, 2), nullable=False, default=0)
    bus_route = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    school = relationship("School")
