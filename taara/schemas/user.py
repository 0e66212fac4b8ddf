"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class UserCreate(BaseModel):
    email: str
    display_name: str
    phone_number: Optional[str] = None


class UserUpdate(BaseModel):
    display_name: Optional[str] = None
    phone_number: Optional[str] = None
    role: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    email: str
    display_name: str
    phone_number: Optional[str] = None
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}
