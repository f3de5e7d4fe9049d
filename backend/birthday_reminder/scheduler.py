"""Optional in-process trigger for the birthday check.

Enabled with ``SCHEDULER_ENABLED``. Deployments with an external cron leave
it off and call ``/api/cron/check-birthdays`` instead.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import HTTPException

from birthday_reminder.config import settings
from birthday_reminder.database import SessionLocal
from birthday_reminder.deps import get_bot_sender, get_push_sender
from birthday_reminder.services.notification_dispatcher import run_birthday_check

logger = logging.getLogger(__name__)

JOB_ID = "birthday_check"

_scheduler: Optional[BackgroundScheduler] = None


def check_birthdays_job() -> None:
    db = SessionLocal()
    try:
        run_birthday_check(db, datetime.now(timezone.utc), get_push_sender(), get_bot_sender())
    except HTTPException as exc:
        logger.error("Scheduled birthday check failed: %s", exc.detail)
    finally:
        db.close()


def start_scheduler() -> BackgroundScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler(timezone="UTC")
    if not _scheduler.running:
        _scheduler.add_job(
            check_birthdays_job,
            trigger="interval",
            seconds=settings.SCHEDULER_INTERVAL_SECONDS,
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        _scheduler.start()
        logger.info("Birthday scheduler started (every %ss)", settings.SCHEDULER_INTERVAL_SECONDS)
    return _scheduler


def stop_scheduler() -> None:
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Birthday scheduler stopped")
