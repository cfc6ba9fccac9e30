"""Pydantic schemas for guide credentials and proximity search."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from evalgate.models.guide import GuideStatus


class GuideRegister(BaseModel):
    user_id: str
    specialty: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    state: Optional[str] = None


class GuideStatusUpdate(BaseModel):
    status: str  # pending, approved, rejected


class GuideOut(BaseModel):
    user_id: str
    status: GuideStatus
    specialty: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    state: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class GuideCandidate(BaseModel):
    user_id: str
    display_name: str
    avatar_url: Optional[str] = None
    rank: Optional[str] = None
    athlete_class: Optional[str] = None
    specialty: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class NearbyGuide(GuideCandidate):
    distance_km: float


class NearbyGuidesOut(BaseModel):
    guides: list[NearbyGuide]
    total: int
    search_radius_km: float
