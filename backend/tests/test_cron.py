"""Tests for the cron-triggered birthday check, push tokens and diagnostics."""
from datetime import date

import pytest
from sqlalchemy.exc import SQLAlchemyError

from birthday_reminder.config import settings
from birthday_reminder.models.birthday import Birthday
from birthday_reminder.models.push_token import PushToken
from birthday_reminder.models.setting import UserSetting
from birthday_reminder.services import notification_dispatcher
from birthday_reminder.services.push_sender import PushNotConfiguredError
from tests.conftest import create_test_birthday, create_test_user, put_settings


def register_token(client, user_id, token):
    resp = client.post("/api/push-tokens/", json={"user_id": user_id, "token": token})
    assert resp.status_code == 201, resp.text
    return resp.json()


def link_chat(db, user_id, chat_id):
    db.add(UserSetting(user_id=user_id, key="telegram_chat_id", value=chat_id))
    db.commit()


@pytest.fixture
def due_birthday(client, clock):
    """A Warsaw birthday due at 09:00 local (07:00 UTC) on 2025-05-15."""
    clock.set(2025, 5, 15, 7, 0)
    user = create_test_user(client)
    birthday = create_test_birthday(
        client, user["user_id"], notification_times=["09:00"], timezone="Europe/Warsaw"
    )
    register_token(client, user["user_id"], "token-1")
    return user, birthday


class TestPushTokens:
    def test_register_is_idempotent(self, client):
        user = create_test_user(client)
        register_token(client, user["user_id"], "abc")
        register_token(client, user["user_id"], "abc")
        tokens = client.get("/api/push-tokens/", params={"user_id": user["user_id"]}).json()
        assert [t["token"] for t in tokens] == ["abc"]

    def test_reregister_moves_token(self, client):
        alice = create_test_user(client, first_name="Alice")
        bob = create_test_user(client, first_name="Bob")
        register_token(client, alice["user_id"], "shared")
        register_token(client, bob["user_id"], "shared")
        assert client.get("/api/push-tokens/", params={"user_id": alice["user_id"]}).json() == []

    def test_delete(self, client):
        user = create_test_user(client)
        register_token(client, user["user_id"], "abc")
        assert client.delete("/api/push-tokens/abc").status_code == 204
        assert client.delete("/api/push-tokens/abc").status_code == 404

    def test_test_push_now(self, client, push_sender):
        user = create_test_user(client)
        register_token(client, user["user_id"], "abc")
        resp = client.post("/api/test-push-now", json={"user_id": user["user_id"]})
        assert resp.status_code == 200
        assert resp.json()["sent"] == 1
        assert push_sender.calls[0][0] == ["abc"]

    def test_test_push_without_tokens(self, client):
        user = create_test_user(client)
        resp = client.post("/api/test-push-now", json={"user_id": user["user_id"]})
        assert resp.json()["status"] == "no tokens"


class TestCheckBirthdays:
    def test_due_birthday_is_sent(self, client, due_birthday, push_sender):
        resp = client.get("/api/cron/check-birthdays")
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["birthdays_checked"] == 1
        assert data["birthdays_today"] == 1
        assert data["due"] == 1
        assert data["notifications_sent"] == 1
        assert data["message"] == "Checked 1 birthdays, found 1 today, sent 1 notifications"

        tokens, message = push_sender.calls[0]
        assert tokens == ["token-1"]
        assert message.body == "Anna Ivanova turns 35 today!"
        assert message.data["type"] == "birthday_reminder"

    def test_not_due_a_minute_later(self, client, due_birthday, clock, push_sender):
        clock.set(2025, 5, 15, 7, 1)
        data = client.get("/api/cron/check-birthdays").json()
        assert data["birthdays_today"] == 1
        assert data["due"] == 0
        assert push_sender.calls == []

    def test_disabled_records_are_not_checked(self, client, due_birthday):
        _, birthday = due_birthday
        client.patch(f"/api/birthdays/{birthday['id']}", json={"notification_enabled": False})
        data = client.get("/api/cron/check-birthdays").json()
        assert data["birthdays_checked"] == 0

    def test_user_default_time_fires_once(self, client, clock, push_sender):
        clock.set(2025, 5, 15, 9, 0)
        user = create_test_user(client)
        put_settings(client, user["user_id"], default_notification_times=["09:00"])
        create_test_birthday(client, user["user_id"], notification_times=["09:00"])
        register_token(client, user["user_id"], "token-1")
        data = client.get("/api/cron/check-birthdays").json()
        assert data["due"] == 1
        assert len(push_sender.calls) == 1

    def test_user_timezone_is_fallback(self, client, clock):
        clock.set(2025, 5, 15, 0, 0)
        user = create_test_user(client)
        put_settings(client, user["user_id"], timezone="Asia/Tokyo")
        create_test_birthday(client, user["user_id"], notification_times=["09:00"])
        assert client.get("/api/cron/check-birthdays").json()["due"] == 1

    def test_invalid_tokens_are_pruned(self, client, due_birthday, push_sender, db):
        user, _ = due_birthday
        register_token(client, user["user_id"], "token-dead")
        push_sender.unregistered.add("token-dead")
        data = client.get("/api/cron/check-birthdays").json()
        push = data["deliveries"][0]["push"]
        assert push["sent"] == 1
        assert push["failed"] == 1
        assert push["tokens_removed"] == 1
        remaining = [t.token for t in db.query(PushToken).all()]
        assert remaining == ["token-1"]

    def test_transient_failure_keeps_token(self, client, due_birthday, push_sender, db):
        push_sender.errors["token-1"] = "UNAVAILABLE"
        data = client.get("/api/cron/check-birthdays").json()
        assert data["deliveries"][0]["push"]["status"] == "failed"
        assert db.query(PushToken).count() == 1

    def test_unconfigured_firebase_is_reported(self, client, due_birthday, push_sender):
        push_sender.configured = False

        def _raise(tokens, message):
            raise PushNotConfiguredError("not set")

        push_sender.send = _raise
        data = client.get("/api/cron/check-birthdays").json()
        assert data["deliveries"][0]["push"]["status"] == "firebase not configured"
        assert data["notifications_sent"] == 0

    def test_telegram_reminder_for_linked_user(self, client, due_birthday, bot_sender, db):
        user, _ = due_birthday
        link_chat(db, user["user_id"], "777")
        data = client.get("/api/cron/check-birthdays").json()
        assert data["notifications_sent"] == 2
        chat_id, text = bot_sender.messages[0]
        assert chat_id == "777"
        assert "Anna Ivanova" in text

    def test_notifications_disabled_skips_delivery(self, client, due_birthday, push_sender):
        user, _ = due_birthday
        put_settings(client, user["user_id"], notifications_enabled=False)
        data = client.get("/api/cron/check-birthdays").json()
        assert data["due"] == 1
        assert data["deliveries"][0]["skipped_reason"] == "notifications disabled"
        assert push_sender.calls == []

    def test_malformed_record_does_not_abort(self, client, due_birthday, db):
        user, _ = due_birthday
        db.add(Birthday(
            user_id=user["user_id"], first_name="Bad", last_name="Row",
            birth_date=date(1990, 5, 15), notification_times=["99:99"],
        ))
        db.commit()
        data = client.get("/api/cron/check-birthdays").json()
        assert data["birthdays_checked"] == 2
        assert data["due"] == 1
        assert len(data["malformed"]) == 1


class TestCheckFailures:
    @pytest.fixture
    def two_linked_users(self, client, clock, db):
        clock.set(2025, 5, 15, 9, 0)
        users = []
        for name, chat_id in (("Alice", "701"), ("Bob", "702")):
            user = create_test_user(client, first_name=name)
            create_test_birthday(client, user["user_id"], notification_times=["09:00"])
            link_chat(db, user["user_id"], chat_id)
            users.append(user)
        return users

    def test_fetch_error_is_server_error(self, client, monkeypatch):
        def _fail(db, user_ids):
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(notification_dispatcher, "load_settings_map", _fail)
        resp = client.get("/api/cron/check-birthdays")
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Database error"

    def test_bot_exception_does_not_stop_other_records(self, client, two_linked_users, bot_sender):
        original = bot_sender.send_message

        def _flaky(chat_id, text, parse_mode="HTML"):
            if not bot_sender.messages:
                bot_sender.messages.append((str(chat_id), text))
                raise AttributeError("'list' object has no attribute 'get'")
            return original(chat_id, text, parse_mode)

        bot_sender.send_message = _flaky
        resp = client.get("/api/cron/check-birthdays")
        assert resp.status_code == 200
        data = resp.json()
        assert data["due"] == 2
        assert data["notifications_sent"] == 1
        assert len(bot_sender.messages) == 2
        outcomes = sorted(d["telegram_sent"] for d in data["deliveries"])
        assert outcomes == [False, True]
        failed = [d for d in data["deliveries"] if not d["telegram_sent"]][0]
        assert "no attribute" in failed["telegram_error"]

    def test_unexpected_delivery_error_is_recorded(self, client, two_linked_users, bot_sender, monkeypatch):
        original = notification_dispatcher.send_push_to_user
        calls = []

        def _flaky(db, user_id, message, push_sender):
            calls.append(user_id)
            if len(calls) == 1:
                raise RuntimeError("token lookup failed")
            return original(db, user_id, message, push_sender)

        monkeypatch.setattr(notification_dispatcher, "send_push_to_user", _flaky)
        resp = client.get("/api/cron/check-birthdays")
        assert resp.status_code == 200
        deliveries = resp.json()["deliveries"]
        assert len(deliveries) == 2
        assert [d["error"] for d in deliveries].count("token lookup failed") == 1
        assert len(bot_sender.messages) == 1

    def test_push_exception_still_sends_telegram(self, client, due_birthday, push_sender, bot_sender, db):
        user, _ = due_birthday
        link_chat(db, user["user_id"], "777")

        def _raise(tokens, message):
            raise RuntimeError("quota exceeded")

        push_sender.send = _raise
        data = client.get("/api/cron/check-birthdays").json()
        delivery = data["deliveries"][0]
        assert delivery["push"]["status"] == "error"
        assert delivery["push"]["failed"] == 1
        assert delivery["push"]["error"] == "quota exceeded"
        assert delivery["telegram_sent"] is True
        assert data["notifications_sent"] == 1
        assert bot_sender.messages[0][0] == "777"


class TestCronAuth:
    def test_secret_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        assert client.get("/api/cron/check-birthdays").status_code == 401
        resp = client.get("/api/cron/check-birthdays", headers={"Authorization": "Bearer wrong"})
        assert resp.status_code == 401
        resp = client.get("/api/cron/check-birthdays", headers={"Authorization": "Bearer s3cret"})
        assert resp.status_code == 200

    def test_public_endpoint_needs_no_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        assert client.get("/api/cron/check-birthdays-public").status_code == 200


class TestDiagnostics:
    def test_notification_times_sends_nothing(self, client, due_birthday, push_sender):
        user, birthday = due_birthday
        resp = client.get("/api/diagnostic/notification-times", params={"user_id": user["user_id"]})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_birthdays"] == 1
        row = data["birthdays"][0]
        assert row["birthday_id"] == birthday["id"]
        assert row["due"] is True
        assert row["local_time"] == "09:00:00"
        assert row["timezone"] == "Europe/Warsaw"
        assert push_sender.calls == []

    def test_check_setup(self, client, due_birthday, bot_sender, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")
        bot_sender.configured = False
        data = client.get("/api/cron/check-setup").json()
        assert data["firebase_configured"] is True
        assert data["telegram_configured"] is False
        assert data["total_tokens"] == 1
        assert data["users_with_tokens"] == 1
        assert data["due_now"] == 1
        assert "TELEGRAM_BOT_TOKEN is not set" in data["issues"]
