"""Birthday check and dispatch: the flow behind every cron-style trigger.

fetch enabled records + settings -> evaluate -> for each due record send
push and Telegram reminders -> prune push tokens FCM reports as invalid.

A datastore failure aborts the run (the next tick is the retry). Delivery
failures are logged per record and never stop the remaining deliveries.
There is no per-(record, time, day) dedup, so overlapping ticks may send twice.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from birthday_reminder.models.birthday import Birthday
from birthday_reminder.models.push_token import PushToken
from birthday_reminder.services import notification_texts
from birthday_reminder.services.notification_evaluator import EvaluationResult, as_utc, evaluate_batch
from birthday_reminder.services.push_sender import FirebasePushSender, PushMessage, PushNotConfiguredError
from birthday_reminder.services.settings_service import load_settings_map
from birthday_reminder.services.telegram_sender import TelegramBotSender
from birthday_reminder.services.user_settings import UserSettings

logger = logging.getLogger(__name__)


@dataclass
class PushDelivery:
    sent: int = 0
    failed: int = 0
    tokens_removed: int = 0
    status: str = "sent"
    error: Optional[str] = None


@dataclass
class DeliveryOutcome:
    birthday_id: str
    name: str
    matched_time: str
    timezone: str
    push: Optional[PushDelivery] = None
    telegram_sent: Optional[bool] = None
    telegram_error: Optional[str] = None
    skipped_reason: Optional[str] = None
    error: Optional[str] = None


@dataclass
class DispatchReport:
    timestamp: datetime
    birthdays_checked: int
    birthdays_today: int
    due: int
    notifications_sent: int
    deliveries: list[DeliveryOutcome] = field(default_factory=list)
    malformed: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Checked {self.birthdays_checked} birthdays, found {self.birthdays_today} today, "
            f"sent {self.notifications_sent} notifications"
        )


def load_enabled_birthdays(db: Session) -> tuple[list[Birthday], dict[str, UserSettings]]:
    """Fetch every enabled record and its owners' settings in two queries."""
    try:
        birthdays = db.query(Birthday).filter(Birthday.notification_enabled.is_(True)).all()
        settings_map = load_settings_map(db, [b.user_id for b in birthdays])
    except SQLAlchemyError:
        logger.exception("Failed to fetch birthdays for notification check")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")
    return birthdays, settings_map


def prune_invalid_tokens(db: Session, tokens: list[str]) -> int:
    """Delete tokens FCM rejected permanently. Failures are logged, not raised."""
    if not tokens:
        return 0
    try:
        removed = db.query(PushToken).filter(PushToken.token.in_(tokens)).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to remove %d invalid FCM tokens", len(tokens))
        return 0
    logger.info("Removed %d invalid FCM tokens", removed)
    return removed


def send_push_to_user(
    db: Session,
    user_id: str,
    message: PushMessage,
    push_sender: FirebasePushSender,
) -> PushDelivery:
    tokens = [t.token for t in db.query(PushToken).filter(PushToken.user_id == user_id).all()]
    if not tokens:
        logger.info("No FCM tokens for user %s", user_id)
        return PushDelivery(status="no tokens")

    try:
        results = push_sender.send(tokens, message)
    except PushNotConfiguredError:
        logger.warning("Firebase Admin not configured, skipping push for user %s", user_id)
        return PushDelivery(status="firebase not configured")
    except Exception as exc:  # transport, auth and quota errors
        logger.exception("FCM send failed for user %s", user_id)
        return PushDelivery(failed=len(tokens), status="error", error=str(exc))

    for result in results:
        if not result.success:
            logger.error("FCM token failure for user %s: %s %s", user_id, result.error_code, result.error_message)

    delivery = PushDelivery(
        sent=sum(1 for r in results if r.success),
        failed=sum(1 for r in results if not r.success),
    )
    delivery.tokens_removed = prune_invalid_tokens(db, [r.token for r in results if r.token_invalid])
    if delivery.sent == 0:
        delivery.status = "failed"
    return delivery


def _deliver(
    db: Session,
    birthday: Birthday,
    result: EvaluationResult,
    user_settings: UserSettings,
    push_sender: FirebasePushSender,
    bot_sender: TelegramBotSender,
) -> DeliveryOutcome:
    outcome = DeliveryOutcome(
        birthday_id=birthday.id,
        name=birthday.full_name,
        matched_time=result.matched_time,
        timezone=result.timezone,
    )
    if not user_settings.notifications_enabled:
        outcome.skipped_reason = "notifications disabled"
        return outcome

    if user_settings.browser_notifications_enabled:
        message = notification_texts.birthday_push_message(
            birthday.id, birthday.first_name, birthday.last_name, result.age
        )
        outcome.push = send_push_to_user(db, birthday.user_id, message, push_sender)

    if user_settings.telegram_chat_id and user_settings.telegram_notifications_enabled:
        text = notification_texts.birthday_reminder_text(birthday.full_name, 0, result.age)
        try:
            bot_result = bot_sender.send_message(user_settings.telegram_chat_id, text)
        except Exception as exc:
            logger.exception("Telegram reminder failed for birthday %s", birthday.id)
            outcome.telegram_sent = False
            outcome.telegram_error = str(exc)
            return outcome
        outcome.telegram_sent = bot_result.ok
        outcome.telegram_error = bot_result.description if not bot_result.ok else None
    return outcome


def run_birthday_check(
    db: Session,
    now: datetime,
    push_sender: FirebasePushSender,
    bot_sender: TelegramBotSender,
) -> DispatchReport:
    """Evaluate every enabled birthday at ``now`` and deliver the due reminders."""
    now = as_utc(now)
    birthdays, settings_map = load_enabled_birthdays(db)
    logger.info("Birthday check at %s: %d birthdays with notifications enabled", now.isoformat(), len(birthdays))

    results = evaluate_batch(birthdays, now, settings_map)
    report = DispatchReport(
        timestamp=now,
        birthdays_checked=len(birthdays),
        birthdays_today=sum(1 for r in results if r.birthday_today),
        due=sum(1 for r in results if r.due),
        notifications_sent=0,
        malformed=[r.birthday_id for r in results if r.error],
    )

    by_id = {b.id: b for b in birthdays}
    for result in results:
        if not result.due:
            continue
        birthday = by_id[result.birthday_id]
        logger.info(
            "Birthday %s due at %s (%s)", birthday.id, result.matched_time, result.timezone
        )
        user_settings = settings_map.get(birthday.user_id, UserSettings(user_id=birthday.user_id))
        try:
            outcome = _deliver(db, birthday, result, user_settings, push_sender, bot_sender)
        except Exception as exc:
            db.rollback()
            logger.exception("Delivery failed for birthday %s", birthday.id)
            outcome = DeliveryOutcome(
                birthday_id=birthday.id,
                name=birthday.full_name,
                matched_time=result.matched_time,
                timezone=result.timezone,
                error=str(exc),
            )
        if outcome.push:
            report.notifications_sent += outcome.push.sent
        if outcome.telegram_sent:
            report.notifications_sent += 1
        report.deliveries.append(outcome)

    logger.info("Birthday check complete: %s", report.message)
    return report
