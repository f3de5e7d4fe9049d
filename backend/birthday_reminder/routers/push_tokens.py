"""Push token registration and test-push API routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from birthday_reminder.database import get_db
from birthday_reminder.deps import get_push_sender
from birthday_reminder.models.push_token import PushToken
from birthday_reminder.schemas.push_token import PushDeliveryOut, PushTestRequest, PushTokenOut, PushTokenRegister
from birthday_reminder.services import notification_texts
from birthday_reminder.services.birthday_service import ensure_user
from birthday_reminder.services.notification_dispatcher import send_push_to_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/push-tokens/", response_model=PushTokenOut, status_code=status.HTTP_201_CREATED)
def register_token(payload: PushTokenRegister, db: Session = Depends(get_db)):
    """Register a device token; re-registering moves it to the given user."""
    ensure_user(db, payload.user_id)
    token = db.query(PushToken).filter(PushToken.token == payload.token).first()
    if token is None:
        token = PushToken(token=payload.token, user_id=payload.user_id)
        db.add(token)
    else:
        token.user_id = payload.user_id
    db.commit()
    db.refresh(token)
    logger.info("Registered FCM token for user %s", payload.user_id)
    return token


@router.get("/push-tokens/", response_model=list[PushTokenOut])
def list_tokens(user_id: str = Query(...), db: Session = Depends(get_db)):
    """List a user's registered device tokens."""
    return db.query(PushToken).filter(PushToken.user_id == user_id).all()


@router.delete("/push-tokens/{token}", status_code=status.HTTP_204_NO_CONTENT)
def delete_token(token: str, db: Session = Depends(get_db)):
    """Unregister a device token."""
    row = db.query(PushToken).filter(PushToken.token == token).first()
    if not row:
        raise HTTPException(status_code=404, detail="Token not found")
    db.delete(row)
    db.commit()
    logger.info("Deleted FCM token for user %s", row.user_id)


@router.post("/test-push-now", response_model=PushDeliveryOut)
def test_push_now(
    payload: PushTestRequest,
    db: Session = Depends(get_db),
    push_sender=Depends(get_push_sender),
):
    """Send a test notification to every device of one user."""
    ensure_user(db, payload.user_id)
    return send_push_to_user(db, payload.user_id, notification_texts.sample_push_message(), push_sender)
