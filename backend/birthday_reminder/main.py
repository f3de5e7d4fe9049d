"""FastAPI application entry point."""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from birthday_reminder.config import settings
from birthday_reminder.database import Base, engine
from birthday_reminder.scheduler import start_scheduler, stop_scheduler

# Import routers
from birthday_reminder.routers import (
    users,
    birthdays,
    settings as settings_router,
    push_tokens,
    cron,
    diagnostics,
    telegram,
    greetings,
    backup,
)

# Import all models so Base.metadata knows about them
from birthday_reminder.models.user import User                          # noqa: F401
from birthday_reminder.models.birthday import Birthday                  # noqa: F401
from birthday_reminder.models.setting import UserSetting                # noqa: F401
from birthday_reminder.models.push_token import PushToken               # noqa: F401
from birthday_reminder.models.telegram_link import TelegramPendingLink  # noqa: F401
from birthday_reminder.models.greeting import Greeting                  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Birthday Reminder",
    description="Birthday list with timezone-aware push and Telegram reminders",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(birthdays.router, prefix="/api/birthdays", tags=["Birthdays"])
app.include_router(settings_router.router, prefix="/api/settings", tags=["Settings"])
app.include_router(push_tokens.router, prefix="/api", tags=["Push"])
app.include_router(cron.router, prefix="/api/cron", tags=["Cron"])
app.include_router(diagnostics.router, prefix="/api/diagnostic", tags=["Diagnostics"])
app.include_router(telegram.router, prefix="/api/telegram", tags=["Telegram"])
app.include_router(greetings.router, prefix="/api/greetings", tags=["Greetings"])
app.include_router(backup.router, prefix="/api/backup", tags=["Backup"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode) and start the scheduler."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    if settings.SCHEDULER_ENABLED:
        start_scheduler()


@app.on_event("shutdown")
def on_shutdown():
    stop_scheduler()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
