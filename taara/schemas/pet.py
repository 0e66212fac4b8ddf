"""Pydantic schemas for Pets."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class PetCreate(BaseModel):
    name: str
    type: str
    breed: Optional[str] = None
    age: Optional[str] = None
    gender: Optional[str] = None
    description: Optional[str] = None
    image_ref: Optional[str] = None
    status: str = "available"


class PetUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    breed: Optional[str] = None
    age: Optional[str] = None
    gender: Optional[str] = None
    description: Optional[str] = None
    image_ref: Optional[str] = None
    status: Optional[str] = None


class PetOut(BaseModel):
    pet_id: str
    name: str
    type: str
    breed: Optional[str] = None
    age: Optional[str] = None
    gender: Optional[str] = None
    description: Optional[str] = None
    image_ref: Optional[str] = None
    status: str
    adopted_by: Optional[str] = None
    adopted_at: Optional[datetime] = None
    added_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PetCounts(BaseModel):
    total: int = 0
    available: int = 0
    pending: int = 0
    adopted: int = 0
