"""Pydantic schemas for push tokens and push diagnostics."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PushTokenRegister(BaseModel):
    user_id: str
    token: str = Field(..., min_length=1)


class PushTokenOut(BaseModel):
    token: str
    user_id: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PushTestRequest(BaseModel):
    user_id: str


class PushDeliveryOut(BaseModel):
    sent: int
    failed: int
    tokens_removed: int
    status: str
    error: Optional[str] = None

    model_config = {"from_attributes": True}
