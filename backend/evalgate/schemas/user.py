"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class UserCreate(BaseModel):
    display_name: str
    username: str
    primary_sport: Optional[str] = None
    avatar_url: Optional[str] = None
    rank: Optional[str] = None
    athlete_class: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    gender: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    display_name: str
    username: str
    primary_sport: Optional[str] = None
    avatar_url: Optional[str] = None
    rank: Optional[str] = None
    athlete_class: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    gender: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AthleteSnapshot(BaseModel):
    """Read-only public profile handed to a guide at redemption time."""

    user_id: str
    display_name: str
    username: str
    primary_sport: Optional[str] = None
    avatar_url: Optional[str] = None
    rank: Optional[str] = None
    athlete_class: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    gender: Optional[str] = None

    model_config = {"from_attributes": True}
