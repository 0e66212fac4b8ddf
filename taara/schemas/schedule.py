"""Pydantic schemas for Kapon schedules and registrations."""
from __future__ import annotations
from datetime import date as date_type, datetime
from typing import Optional, Any
from pydantic import BaseModel, Field

from taara.schemas.request import RequestOut


class ScheduleCreate(BaseModel):
    title: str
    date: date_type
    start_time: str
    end_time: Optional[str] = None
    location: str
    description: Optional[str] = None
    requirements: Optional[str] = None
    capacity: Optional[int] = Field(default=None, gt=0)


class ScheduleStatusUpdate(BaseModel):
    status: str  # active, cancelled


class ScheduleOut(BaseModel):
    schedule_id: str
    title: str
    date: date_type
    start_time: str
    end_time: Optional[str] = None
    location: str
    description: Optional[str] = None
    requirements: Optional[str] = None
    capacity: int
    registered_count: int
    status: str
    is_full: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RegistrationCreate(BaseModel):
    owner_user_id: str
    details: dict[str, Any]


class OwnerRegistrationOut(BaseModel):
    registration: RequestOut
    schedule: Optional[ScheduleOut] = None
    schedule_available: bool
