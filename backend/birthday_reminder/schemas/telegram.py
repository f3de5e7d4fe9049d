"""Pydantic schemas for the Telegram bot integration.

Only the parts of a Telegram ``Update`` the webhook reads are modelled;
everything else is accepted and ignored.
"""
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    type: str = "private"


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int
    from_user: Optional[TelegramUser] = Field(None, alias="from")
    chat: TelegramChat
    text: Optional[str] = None


class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: Optional[TelegramMessage] = None


class TelegramLinkRequest(BaseModel):
    user_id: str
    link_code: str = Field(..., min_length=1)


class TelegramLinkOut(BaseModel):
    success: bool
    username: Optional[str] = None
    first_name: Optional[str] = None


class TelegramTestRequest(BaseModel):
    user_id: str
    message: Optional[str] = None
    test_birthday: bool = False
