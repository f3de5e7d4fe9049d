"""Per-user settings API routes."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from birthday_reminder.database import get_db
from birthday_reminder.schemas.settings import SettingRowOut, SettingsOut, SettingsUpdate
from birthday_reminder.services import settings_service, telegram_service
from birthday_reminder.services.birthday_service import ensure_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{user_id}", response_model=SettingsOut)
def get_settings(user_id: str, db: Session = Depends(get_db)):
    """Typed settings view, folded from the stored key/value rows."""
    ensure_user(db, user_id)
    return SettingsOut.from_settings(settings_service.get_user_settings(db, user_id))


@router.put("/{user_id}", response_model=SettingsOut)
def update_settings(user_id: str, payload: SettingsUpdate, db: Session = Depends(get_db)):
    """Update only the fields present in the request body."""
    ensure_user(db, user_id)
    updated = settings_service.update_settings(db, user_id, payload.model_dump(exclude_unset=True))
    return SettingsOut.from_settings(updated)


@router.get("/{user_id}/raw", response_model=list[SettingRowOut])
def get_raw_settings(user_id: str, db: Session = Depends(get_db)):
    """The stored rows as-is, for troubleshooting."""
    ensure_user(db, user_id)
    return settings_service.list_setting_rows(db, user_id)


@router.delete("/{user_id}/telegram", response_model=SettingsOut)
def unlink_telegram(user_id: str, db: Session = Depends(get_db)):
    """Forget the linked Telegram chat."""
    ensure_user(db, user_id)
    telegram_service.unlink_account(db, user_id)
    return SettingsOut.from_settings(settings_service.get_user_settings(db, user_id))
