"""Message texts for push notifications and the Telegram bot."""
from html import escape
from typing import Optional

from birthday_reminder.services.push_sender import PushMessage

LINK_CODE_TTL_HINT = "The code is valid for {minutes} minutes."

BOT_HELP_TEXT = (
    "🎂 <b>Birthday Reminder Bot</b>\n\n"
    "Commands:\n"
    "/start - get a code to link your account\n"
    "/status - check whether your account is linked\n"
    "/help - show this help"
)
BOT_LINKED_TEXT = "✅ <b>Your account is linked!</b>\n\nYou will receive birthday reminders here."
BOT_NOT_LINKED_TEXT = "❌ <b>Account not linked</b>\n\nSend /start to get a link code."
BOT_LINK_CONFIRMED_TEXT = "✅ <b>Account linked successfully!</b>\n\nBirthday reminders will now arrive in Telegram."
BOT_TEST_TEXT = "🔔 Test message from Birthday Reminder!"


def _years(age: int) -> str:
    return f"{age} year" if age == 1 else f"{age} years"


def _days(days: int) -> str:
    return f"{days} day" if days == 1 else f"{days} days"


def birthday_push_message(birthday_id: str, first_name: str, last_name: str, age: int) -> PushMessage:
    return PushMessage(
        title="🎂 Birthday today!",
        body=f"{first_name} {last_name} turns {age} today!",
        data={
            "birthdayId": str(birthday_id),
            "firstName": first_name,
            "lastName": last_name,
            "age": str(age),
            "type": "birthday_reminder",
            "link": "/",
        },
        tag=f"birthday-{birthday_id}",
    )


def sample_push_message() -> PushMessage:
    return PushMessage(
        title="🔔 Test notification",
        body="Push notifications are working.",
        data={"type": "test"},
        tag="birthday-test",
    )


def birthday_reminder_text(person: str, days_until: int, age: Optional[int] = None) -> str:
    person = escape(person)
    if days_until == 0:
        text = f"🎂 <b>Birthday today!</b>\n\n🎉 {person}"
        return text + (f" turns {_years(age)}!" if age else "")
    if days_until == 1:
        text = f"🔔 <b>Reminder</b>\n\nTomorrow is {person}'s birthday"
    else:
        text = f"🔔 <b>Reminder</b>\n\n{person}'s birthday is in {_days(days_until)}"
    return text + (f" (turning {_years(age)})" if age else "")


def greeting_text(person: str, greeting: str) -> str:
    return f"🎂 <b>Greeting for {escape(person)}</b>\n\n{escape(greeting)}"


def link_code_text(code: str, ttl_minutes: int) -> str:
    return (
        "🎂 <b>Welcome to Birthday Reminder Bot!</b>\n\n"
        "Enter this code in the app to link your account:\n\n"
        f"<code>{code}</code>\n\n"
        + LINK_CODE_TTL_HINT.format(minutes=ttl_minutes)
    )
