"""Pydantic schemas for EvaluationRequests."""
from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel

from evalgate.models.evaluation_request import RequestStatus
from evalgate.schemas.user import AthleteSnapshot


class EvaluationRequestCreate(BaseModel):
    guide_id: str
    message: str


class EvaluationRequestResolve(BaseModel):
    action: str  # ACCEPT or REJECT
    message: Optional[str] = None
    location: Optional[str] = None
    scheduled_date: Optional[str] = None  # YYYY-MM-DD
    scheduled_time: Optional[str] = None  # HH:MM, 24h
    equipment: Optional[str] = None  # comma-separated


class EvaluationRequestOut(BaseModel):
    request_id: str
    seeker_id: str
    guide_id: str
    status: RequestStatus
    message: str
    moderator_message: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    location: Optional[str] = None
    equipment: Optional[list[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class GuideInboxItem(EvaluationRequestOut):
    """Incoming request as the guide sees it, with the seeker's public profile."""

    seeker: Optional[AthleteSnapshot] = None


class SeekerRequestsOut(BaseModel):
    requests: list[EvaluationRequestOut]
    request_status_map: dict[str, dict[str, Any]]
    total_requests: int


class GuideInboxOut(BaseModel):
    requests: list[GuideInboxItem]
    stats: dict[str, int]
    guide_id: str


class ResolveOut(BaseModel):
    request: EvaluationRequestOut
    verification_code: Optional[int] = None
    message: str


class RedeemIn(BaseModel):
    code: Any


class RedeemOut(BaseModel):
    request_id: str
    scheduled_date: date
    athlete: AthleteSnapshot


class CleanupIn(BaseModel):
    code: Any
    seeker_id: Optional[str] = None


class CleanupOut(BaseModel):
    success: bool = True
    message: str
    deleted_count: int


class ExpireOut(BaseModel):
    expired_count: int


class EligibilityOut(BaseModel):
    guide_id: str
    seeker_id: str
    eligible: bool
