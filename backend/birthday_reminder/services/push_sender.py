"""Firebase Cloud Messaging sender.

Wraps ``firebase_admin.messaging.send_each_for_multicast`` and reports a
per-token outcome so callers can prune tokens FCM rejects permanently.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "birthday-reminder"

# INVALID_ARGUMENT also covers malformed payloads; only this message means a bad token
INVALID_TOKEN_MESSAGE = "registration token"


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    tag: Optional[str] = None


@dataclass(frozen=True)
class PushResult:
    token: str
    success: bool
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    token_invalid: bool = False


class PushNotConfiguredError(RuntimeError):
    pass


def is_token_invalid(exc: Optional[Exception]) -> bool:
    """True when FCM says the token itself will never work again."""
    if isinstance(exc, messaging.UnregisteredError):
        return True
    return isinstance(exc, exceptions.InvalidArgumentError) and INVALID_TOKEN_MESSAGE in str(exc).lower()


class FirebasePushSender:
    def __init__(self, service_account_key: str, icon_url: str = "/icon-192x192.png"):
        self._service_account_key = service_account_key.strip()
        self._icon_url = icon_url
        self._app: Optional[firebase_admin.App] = None

    def is_configured(self) -> bool:
        return bool(self._service_account_key)

    def _get_app(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app
        if not self.is_configured():
            raise PushNotConfiguredError("FIREBASE_SERVICE_ACCOUNT_KEY is not set")

        try:
            self._app = firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            cred = credentials.Certificate(json.loads(self._service_account_key))
            self._app = firebase_admin.initialize_app(cred, name=FIREBASE_APP_NAME)
            logger.info("Initialized Firebase Admin app %s", FIREBASE_APP_NAME)
        return self._app

    def _build_message(self, tokens: list[str], message: PushMessage) -> messaging.MulticastMessage:
        return messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=message.title, body=message.body),
            data=message.data,
            webpush=messaging.WebpushConfig(
                notification=messaging.WebpushNotification(
                    icon=self._icon_url,
                    tag=message.tag,
                    require_interaction=True,
                    vibrate=[200, 100, 200],
                ),
            ),
        )

    def send(self, tokens: list[str], message: PushMessage) -> list[PushResult]:
        """Send one message to many tokens; never raises for per-token failures."""
        if not tokens:
            return []

        response = messaging.send_each_for_multicast(self._build_message(tokens, message), app=self._get_app())
        results: list[PushResult] = []
        for token, item in zip(tokens, response.responses):
            if item.success:
                results.append(PushResult(token=token, success=True))
                continue
            exc = item.exception
            results.append(
                PushResult(
                    token=token,
                    success=False,
                    error_code=getattr(exc, "code", None),
                    error_message=str(exc) if exc else None,
                    token_invalid=is_token_invalid(exc),
                )
            )

        logger.info(
            "FCM multicast: %d sent, %d failed",
            response.success_count,
            response.failure_count,
        )
        return results
