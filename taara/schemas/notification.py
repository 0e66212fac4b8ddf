"""Pydantic schemas for Notifications."""
from __future__ import annotations
from datetime import datetime
from typing import Optional, Any
from pydantic import BaseModel, Field


class NotificationOut(BaseModel):
    notification_id: str
    user_id: str
    type: str
    title: str
    message: str
    read: bool
    created_at: datetime
    read_at: Optional[datetime] = None
    related_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")

    model_config = {"from_attributes": True, "populate_by_name": True}


class UnreadCount(BaseModel):
    user_id: str
    count: int


class BulkResult(BaseModel):
    user_id: str
    count: int
