"""TelegramPendingLink ORM model: a one-time code issued by the bot's /start."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from birthday_reminder.database import Base


class TelegramPendingLink(Base):
    __tablename__ = "telegram_pending_links"

    chat_id = Column(String(32), primary_key=True)
    link_code = Column(String(16), nullable=False, index=True)
    username = Column(String(100), nullable=True)
    first_name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
