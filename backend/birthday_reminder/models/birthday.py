"""Birthday ORM model: one tracked member of a user's list."""
import uuid
from sqlalchemy import Column, String, Date, Boolean, DateTime, JSON, Text, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from birthday_reminder.database import Base

MAX_NOTIFICATION_TIMES = 5


class Birthday(Base):
    __tablename__ = "birthdays"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    birth_date = Column(Date, nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    photo_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    notification_enabled = Column(Boolean, nullable=False, default=True)
    notification_time = Column(String(8), nullable=True)  # legacy single HH:MM:SS
    notification_times = Column(JSON, nullable=True, default=list)
    timezone = Column(String(64), nullable=True)  # IANA name, "auto" or "disabled"
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    greeting = relationship("Greeting", back_populates="birthday", uselist=False, cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
