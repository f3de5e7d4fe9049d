"""Telegram Bot API sender (``sendMessage`` over httpx)."""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotResult:
    ok: bool
    description: Optional[str] = None


class TelegramBotSender:
    def __init__(self, token: str, api_base: str = "https://api.telegram.org", timeout: float = 10.0):
        self._token = token.strip()
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    def is_configured(self) -> bool:
        return bool(self._token)

    def send_message(self, chat_id: str, text: str, parse_mode: str = "HTML") -> BotResult:
        if not self.is_configured():
            logger.error("Telegram bot token not configured")
            return BotResult(ok=False, description="Bot token not configured")

        try:
            resp = httpx.post(
                f"{self._api_base}/bot{self._token}/sendMessage",
                json={"chat_id": chat_id, "text": text, "parse_mode": parse_mode},
                timeout=self._timeout,
            )
            payload = resp.json()
        except httpx.HTTPError as exc:
            logger.error("Telegram request to chat %s failed: %s", chat_id, exc)
            return BotResult(ok=False, description=str(exc))
        except ValueError:
            logger.error("Telegram returned a non-JSON response (HTTP %s)", resp.status_code)
            return BotResult(ok=False, description=f"HTTP {resp.status_code}")

        if not isinstance(payload, dict):
            logger.error("Telegram returned an unexpected response (HTTP %s)", resp.status_code)
            return BotResult(ok=False, description=f"HTTP {resp.status_code}")
        if not payload.get("ok"):
            logger.error("Telegram send error for chat %s: %s", chat_id, payload.get("description"))
            return BotResult(ok=False, description=payload.get("description"))
        return BotResult(ok=True)
