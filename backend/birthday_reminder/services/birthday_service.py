"""Birthday service: ownership checks, CRUD, bulk operations, upcoming list."""
import logging
from datetime import date
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from birthday_reminder.models.birthday import Birthday
from birthday_reminder.models.greeting import Greeting
from birthday_reminder.models.user import User
from birthday_reminder.services.date_logic import days_until_birthday, next_birthday, turning_age

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = ("id", "user_id", "created_at")


def ensure_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def get_birthday(db: Session, birthday_id: str) -> Birthday:
    birthday = db.query(Birthday).filter(Birthday.id == birthday_id).first()
    if not birthday:
        raise HTTPException(status_code=404, detail="Birthday not found")
    return birthday


def list_birthdays(
    db: Session,
    user_id: str,
    search: Optional[str] = None,
    month: Optional[int] = None,
) -> list[Birthday]:
    """List a user's birthdays in calendar order (month, day), optionally filtered."""
    query = db.query(Birthday).filter(Birthday.user_id == user_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Birthday.first_name.ilike(pattern), Birthday.last_name.ilike(pattern)))

    rows = query.all()
    if month:
        rows = [b for b in rows if b.birth_date.month == month]
    return sorted(rows, key=lambda b: (b.birth_date.month, b.birth_date.day, b.last_name.lower()))


def create_birthday(db: Session, user_id: str, fields: dict[str, Any]) -> Birthday:
    ensure_user(db, user_id)
    birthday = Birthday(user_id=user_id, **fields)
    db.add(birthday)
    db.commit()
    db.refresh(birthday)
    logger.info("Created birthday %s (%s) for user %s", birthday.id, birthday.full_name, user_id)
    return birthday


def create_birthdays(db: Session, user_id: str, rows: list[dict[str, Any]]) -> list[Birthday]:
    """Bulk add in a single transaction: either every row is stored or none."""
    ensure_user(db, user_id)
    birthdays = [Birthday(user_id=user_id, **fields) for fields in rows]
    db.add_all(birthdays)
    db.commit()
    for birthday in birthdays:
        db.refresh(birthday)
    logger.info("Bulk-created %d birthdays for user %s", len(birthdays), user_id)
    return birthdays


def update_birthday(db: Session, birthday_id: str, updates: dict[str, Any]) -> Birthday:
    birthday = get_birthday(db, birthday_id)
    for field, value in updates.items():
        if hasattr(birthday, field) and field not in _IMMUTABLE_FIELDS:
            setattr(birthday, field, value)

    db.commit()
    db.refresh(birthday)
    logger.info("Updated birthday %s (%s)", birthday_id, sorted(updates))
    return birthday


def delete_birthday(db: Session, birthday_id: str) -> None:
    birthday = get_birthday(db, birthday_id)
    db.delete(birthday)
    db.commit()
    logger.info("Deleted birthday %s", birthday_id)


def delete_birthdays(db: Session, user_id: str, ids: list[str]) -> int:
    """Delete the listed birthdays that belong to ``user_id``; others are ignored."""
    owned = [row.id for row in db.query(Birthday.id).filter(Birthday.user_id == user_id, Birthday.id.in_(ids))]
    if owned:
        db.query(Greeting).filter(Greeting.birthday_id.in_(owned)).delete(synchronize_session=False)
    deleted = db.query(Birthday).filter(Birthday.id.in_(owned)).delete(synchronize_session=False)
    db.commit()
    logger.info("Bulk-deleted %d of %d requested birthdays for user %s", deleted, len(ids), user_id)
    return deleted


def upcoming_birthdays(db: Session, user_id: str, today: date, days: int) -> list[dict[str, Any]]:
    """Birthdays occurring within ``days`` days of ``today`` (inclusive), soonest first."""
    upcoming = []
    for birthday in db.query(Birthday).filter(Birthday.user_id == user_id).all():
        days_until = days_until_birthday(birthday.birth_date, today)
        if days_until > days:
            continue
        occurrence = next_birthday(birthday.birth_date, today)
        upcoming.append({
            "birthday": birthday,
            "next_date": occurrence,
            "days_until": days_until,
            "turning_age": turning_age(birthday.birth_date, occurrence),
        })
    upcoming.sort(key=lambda item: (item["days_until"], item["birthday"].last_name.lower()))
    return upcoming
