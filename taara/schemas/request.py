"""Pydantic schemas for lifecycle Requests."""
from __future__ import annotations
from datetime import datetime
from typing import Optional, Any
from pydantic import BaseModel


class RequestCreate(BaseModel):
    kind: str  # adoption, volunteer, kapon_registration, donation
    owner_user_id: str
    subject_ref: Optional[str] = None
    payload: dict[str, Any] = {}


class RequestTransition(BaseModel):
    actor_user_id: str
    status: str
    admin_notes: Optional[str] = None


class RequestOut(BaseModel):
    request_id: str
    kind: str
    owner_user_id: str
    subject_ref: Optional[str] = None
    status: str
    hidden: bool
    payload: dict[str, Any]
    admin_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    reviewed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RequestSummary(BaseModel):
    counts: dict[str, dict[str, int]]
    donation_total: float
