"""Pytest fixtures: SQLite database, fake senders and a controllable clock."""
from datetime import datetime, timezone
from typing import Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from birthday_reminder.database import Base, get_db
from birthday_reminder.deps import get_bot_sender, get_now, get_push_sender
from birthday_reminder.main import app
from birthday_reminder.services.push_sender import PushResult
from birthday_reminder.services.telegram_sender import BotResult

# Import all models so they register with Base.metadata
from birthday_reminder.models.user import User                          # noqa: F401
from birthday_reminder.models.birthday import Birthday                  # noqa: F401
from birthday_reminder.models.setting import UserSetting                # noqa: F401
from birthday_reminder.models.push_token import PushToken               # noqa: F401
from birthday_reminder.models.telegram_link import TelegramPendingLink  # noqa: F401
from birthday_reminder.models.greeting import Greeting                  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


class FakePushSender:
    """Records every multicast; tokens listed in ``errors`` fail with that FCM code,
    tokens in ``unregistered`` fail as no longer valid."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.errors: dict[str, str] = {}
        self.unregistered: set[str] = set()
        self.calls: list[tuple[list[str], object]] = []

    def is_configured(self) -> bool:
        return self.configured

    def send(self, tokens, message):
        self.calls.append((list(tokens), message))
        results = []
        for t in tokens:
            if t in self.unregistered:
                results.append(PushResult(token=t, success=False, error_code="NOT_FOUND", token_invalid=True))
            else:
                results.append(PushResult(token=t, success=t not in self.errors, error_code=self.errors.get(t)))
        return results


class FakeBotSender:
    def __init__(self, configured: bool = True):
        self.configured = configured
        self.fail_with: Optional[str] = None
        self.messages: list[tuple[str, str]] = []

    def is_configured(self) -> bool:
        return self.configured

    def send_message(self, chat_id, text, parse_mode="HTML"):
        self.messages.append((str(chat_id), text))
        if self.fail_with:
            return BotResult(ok=False, description=self.fail_with)
        return BotResult(ok=True)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def set(self, *args, tzinfo=timezone.utc):
        self.now = datetime(*args, tzinfo=tzinfo)


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session bound to the test engine."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def push_sender():
    return FakePushSender()


@pytest.fixture
def bot_sender():
    return FakeBotSender()


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 5, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="function")
def client(db_engine, push_sender, bot_sender, clock):
    """FastAPI TestClient with the database, senders and clock overridden."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_push_sender] = lambda: push_sender
    app.dependency_overrides[get_bot_sender] = lambda: bot_sender
    app.dependency_overrides[get_now] = lambda: clock.now
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create records via the API, return the JSON response dict
# ---------------------------------------------------------------------------
def create_test_user(client: TestClient, first_name: str = "Test", email: Optional[str] = None) -> dict:
    """POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={
        "first_name": first_name,
        "last_name": "User",
        "email": email,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_birthday(client: TestClient, user_id: str, **overrides) -> dict:
    """POST /api/birthdays and return response JSON."""
    payload = {
        "user_id": user_id,
        "first_name": "Anna",
        "last_name": "Ivanova",
        "birth_date": "1990-05-15",
    }
    payload.update(overrides)
    resp = client.post("/api/birthdays/", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def put_settings(client: TestClient, user_id: str, **fields) -> dict:
    resp = client.put(f"/api/settings/{user_id}", json=fields)
    assert resp.status_code == 200, resp.text
    return resp.json()
