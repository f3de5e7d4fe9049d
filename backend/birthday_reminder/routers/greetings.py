"""Greeting API routes."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from birthday_reminder.database import get_db
from birthday_reminder.deps import get_bot_sender
from birthday_reminder.schemas.greeting import GreetingOut, GreetingUpsert
from birthday_reminder.services import greeting_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[GreetingOut])
def list_greetings(user_id: str = Query(...), db: Session = Depends(get_db)):
    return greeting_service.list_greetings(db, user_id)


@router.put("/{birthday_id}", response_model=GreetingOut)
def save_greeting(birthday_id: str, payload: GreetingUpsert, db: Session = Depends(get_db)):
    """Create or replace the greeting for a birthday."""
    return greeting_service.upsert_greeting(db, payload.user_id, birthday_id, payload.text)


@router.delete("/{birthday_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_greeting(birthday_id: str, db: Session = Depends(get_db)):
    greeting_service.delete_greeting(db, birthday_id)


@router.post("/{birthday_id}/send")
def send_greeting(
    birthday_id: str,
    user_id: str = Query(...),
    db: Session = Depends(get_db),
    bot=Depends(get_bot_sender),
):
    """Send the greeting to the user's linked Telegram chat."""
    greeting_service.send_greeting(db, user_id, birthday_id, bot)
    return {"success": True}
