from sqlalchemy import Column, ForeignKey, Integer, String, Text

from app.db.session import Base


class MessageTemplate(Base):
    """Guardian message template ({studentName}, {parentName}, ... placeholders)."""

    __tablename__ = "message_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    content = Column(Text, nullable=False)
