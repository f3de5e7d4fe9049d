"""Cron-triggered birthday check routes.

An external scheduler (or the in-process one, see ``scheduler.py``) calls
``/check-birthdays`` once a minute. Each call is an independent evaluation
at the current instant.
"""
import logging
import secrets
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from birthday_reminder.config import settings
from birthday_reminder.database import get_db
from birthday_reminder.deps import get_bot_sender, get_now, get_push_sender
from birthday_reminder.models.push_token import PushToken
from birthday_reminder.models.user import User
from birthday_reminder.schemas.notification import DispatchReportOut, SetupCheckOut
from birthday_reminder.services.notification_dispatcher import load_enabled_birthdays, run_birthday_check
from birthday_reminder.services.notification_evaluator import as_utc, evaluate_batch

logger = logging.getLogger(__name__)
router = APIRouter()


def require_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Check ``Authorization: Bearer <CRON_SECRET>`` when a secret is configured."""
    if not settings.CRON_SECRET:
        return
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not secrets.compare_digest(authorization, expected):
        logger.warning("Rejected cron call with missing or wrong secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.get("/check-birthdays", response_model=DispatchReportOut, dependencies=[Depends(require_cron_secret)])
def check_birthdays(
    db: Session = Depends(get_db),
    now=Depends(get_now),
    push_sender=Depends(get_push_sender),
    bot_sender=Depends(get_bot_sender),
):
    """Evaluate all enabled birthdays now and send the due reminders."""
    report = run_birthday_check(db, now, push_sender, bot_sender)
    return DispatchReportOut.model_validate(report, from_attributes=True)


@router.get("/check-birthdays-public", response_model=DispatchReportOut)
def check_birthdays_public(
    db: Session = Depends(get_db),
    now=Depends(get_now),
    push_sender=Depends(get_push_sender),
    bot_sender=Depends(get_bot_sender),
):
    """Same flow without the secret, for hosts whose cron cannot send headers."""
    report = run_birthday_check(db, now, push_sender, bot_sender)
    return DispatchReportOut.model_validate(report, from_attributes=True)


@router.get("/check-setup", response_model=SetupCheckOut)
def check_setup(
    db: Session = Depends(get_db),
    now=Depends(get_now),
    push_sender=Depends(get_push_sender),
    bot_sender=Depends(get_bot_sender),
):
    """Summarize configuration and data, listing anything that blocks delivery."""
    now = as_utc(now)
    birthdays, settings_map = load_enabled_birthdays(db)
    results = evaluate_batch(birthdays, now, settings_map)

    total_users = db.query(func.count(User.user_id)).scalar()
    total_tokens = db.query(func.count(PushToken.token)).scalar()
    users_with_tokens = db.query(func.count(func.distinct(PushToken.user_id))).scalar()

    issues = []
    if not push_sender.is_configured():
        issues.append("FIREBASE_SERVICE_ACCOUNT_KEY is not set")
    if not bot_sender.is_configured():
        issues.append("TELEGRAM_BOT_TOKEN is not set")
    if total_tokens == 0:
        issues.append("No push tokens registered")
    if not birthdays:
        issues.append("No birthdays with notifications enabled")
    malformed = [r.birthday_id for r in results if r.error]
    if malformed:
        issues.append(f"{len(malformed)} birthdays have malformed data")
    if not settings.CRON_SECRET:
        issues.append("CRON_SECRET is not set, /check-birthdays is unprotected")

    return SetupCheckOut(
        timestamp=now,
        firebase_configured=push_sender.is_configured(),
        telegram_configured=bot_sender.is_configured(),
        scheduler_enabled=settings.SCHEDULER_ENABLED,
        total_users=total_users,
        users_with_tokens=users_with_tokens,
        total_tokens=total_tokens,
        enabled_birthdays=len(birthdays),
        birthdays_today=sum(1 for r in results if r.birthday_today),
        due_now=sum(1 for r in results if r.due),
        issues=issues,
    )
