"""PushToken ORM model: one FCM registration token per browser/device."""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from birthday_reminder.database import Base


class PushToken(Base):
    __tablename__ = "fcm_tokens"

    token = Column(String(512), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
