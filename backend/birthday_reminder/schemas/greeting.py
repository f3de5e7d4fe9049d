"""Pydantic schemas for Greetings."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class GreetingUpsert(BaseModel):
    user_id: str
    text: str = Field(..., min_length=1)


class GreetingOut(BaseModel):
    id: str
    user_id: str
    birthday_id: str
    text: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
