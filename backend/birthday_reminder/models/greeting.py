"""Greeting ORM model: a prepared congratulation text for one birthday."""
import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from birthday_reminder.database import Base


class Greeting(Base):
    __tablename__ = "greetings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    birthday_id = Column(String(36), ForeignKey("birthdays.id", ondelete="CASCADE"), nullable=False, unique=True)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    birthday = relationship("Birthday", back_populates="greeting")
