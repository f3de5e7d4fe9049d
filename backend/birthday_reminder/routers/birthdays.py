"""Birthday API routes, delegating to birthday_service."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from birthday_reminder.database import get_db
from birthday_reminder.deps import get_now
from birthday_reminder.schemas.birthday import (
    BirthdayCreate,
    BirthdayOut,
    BirthdayUpdate,
    BulkBirthdayCreate,
    BulkDeleteRequest,
    BulkDeleteResult,
    UpcomingBirthdayOut,
)
from birthday_reminder.services import birthday_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=BirthdayOut, status_code=status.HTTP_201_CREATED)
def create_birthday(payload: BirthdayCreate, db: Session = Depends(get_db)):
    """Add a birthday to a user's list."""
    fields = payload.model_dump(exclude={"user_id"})
    return birthday_service.create_birthday(db, payload.user_id, fields)


@router.post("/bulk", response_model=list[BirthdayOut], status_code=status.HTTP_201_CREATED)
def bulk_create_birthdays(payload: BulkBirthdayCreate, db: Session = Depends(get_db)):
    """Add several birthdays at once (all or nothing)."""
    rows = [item.model_dump() for item in payload.birthdays]
    return birthday_service.create_birthdays(db, payload.user_id, rows)


@router.get("/", response_model=list[BirthdayOut])
def list_birthdays(
    user_id: str = Query(...),
    search: Optional[str] = Query(None, description="Match first or last name"),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
):
    """List a user's birthdays in calendar order."""
    return birthday_service.list_birthdays(db, user_id, search=search, month=month)


@router.get("/upcoming", response_model=list[UpcomingBirthdayOut])
def upcoming_birthdays(
    user_id: str = Query(...),
    days: int = Query(30, ge=0, le=366),
    db: Session = Depends(get_db),
    now=Depends(get_now),
):
    """Birthdays in the next ``days`` days, soonest first."""
    return birthday_service.upcoming_birthdays(db, user_id, now.date(), days)


@router.post("/bulk-delete", response_model=BulkDeleteResult)
def bulk_delete_birthdays(payload: BulkDeleteRequest, db: Session = Depends(get_db)):
    """Delete several of a user's birthdays."""
    deleted = birthday_service.delete_birthdays(db, payload.user_id, payload.ids)
    return BulkDeleteResult(deleted=deleted)


@router.get("/{birthday_id}", response_model=BirthdayOut)
def get_birthday(birthday_id: str, db: Session = Depends(get_db)):
    """Fetch a single birthday by ID."""
    return birthday_service.get_birthday(db, birthday_id)


@router.patch("/{birthday_id}", response_model=BirthdayOut)
def update_birthday(birthday_id: str, payload: BirthdayUpdate, db: Session = Depends(get_db)):
    """Partially update a birthday."""
    return birthday_service.update_birthday(db, birthday_id, payload.model_dump(exclude_unset=True))


@router.delete("/{birthday_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_birthday(birthday_id: str, db: Session = Depends(get_db)):
    """Delete a birthday."""
    birthday_service.delete_birthday(db, birthday_id)
