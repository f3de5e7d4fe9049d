"""Read-only view of what the evaluator decides right now."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from birthday_reminder.database import get_db
from birthday_reminder.deps import get_now
from birthday_reminder.schemas.notification import EvaluationOut, NotificationTimesReport
from birthday_reminder.services.notification_dispatcher import load_enabled_birthdays
from birthday_reminder.services.notification_evaluator import as_utc, evaluate_batch

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/notification-times", response_model=NotificationTimesReport)
def notification_times(
    user_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    now=Depends(get_now),
):
    """Evaluator output for every enabled birthday (optionally one user's). Sends nothing."""
    now = as_utc(now)
    birthdays, settings_map = load_enabled_birthdays(db)
    if user_id:
        birthdays = [b for b in birthdays if b.user_id == user_id]
    results = evaluate_batch(birthdays, now, settings_map)

    rows = []
    for birthday, result in zip(birthdays, results):
        rows.append(
            EvaluationOut(
                birthday_id=birthday.id,
                user_id=birthday.user_id,
                name=birthday.full_name,
                birth_date=birthday.birth_date,
                due=result.due,
                birthday_today=result.birthday_today,
                matched_time=result.matched_time,
                local_time=result.local_time,
                local_date=result.local_date,
                notification_times=list(result.notification_times),
                timezone=result.timezone,
                age=result.age,
                error=result.error,
            )
        )
    return NotificationTimesReport(server_time_utc=now, total_birthdays=len(rows), birthdays=rows)
