"""Pydantic schemas for Announcements."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class AnnouncementCreate(BaseModel):
    title: str
    content: str
    is_active: bool = True  # publish immediately


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class AnnouncementActive(BaseModel):
    is_active: bool


class AnnouncementOut(BaseModel):
    announcement_id: str
    title: str
    content: str
    is_active: bool
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
