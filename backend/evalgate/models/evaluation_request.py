"""EvaluationRequest ORM model.

A seeker asks a guide for an in-person evaluation. The row moves
PENDING -> ACCEPTED | REJECTED, and ACCEPTED -> VERIFIED once the guide
redeems the verification code on the scheduled day.
"""
import uuid
import enum
from sqlalchemy import (
    Column, String, DateTime, Date, Integer, JSON, ForeignKey, Index, Enum as SAEnum, text,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from evalgate.database import Base


class RequestStatus(str, enum.Enum):
    pending = "PENDING"
    accepted = "ACCEPTED"
    rejected = "REJECTED"
    verified = "VERIFIED"
    cancelled = "CANCELLED"


ACTIVE_STATUSES = (RequestStatus.pending, RequestStatus.accepted)
VISIBLE_STATUSES = (RequestStatus.pending, RequestStatus.accepted, RequestStatus.rejected)

# SAEnum stores member names, so the partial index filters on those.
_ACTIVE_PREDICATE = text("status IN ('pending', 'accepted')")


class EvaluationRequest(Base):
    __tablename__ = "evaluation_requests"

    request_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    seeker_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    guide_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    status = Column(SAEnum(RequestStatus, native_enum=False), nullable=False, default=RequestStatus.pending)
    message = Column(String(150), nullable=False)
    moderator_message = Column(String(500), nullable=True)
    scheduled_date = Column(Date, nullable=True)
    scheduled_time = Column(String(5), nullable=True)
    location = Column(String(200), nullable=True)
    equipment = Column(JSON, nullable=True)
    verification_code = Column(Integer, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    seeker = relationship("User", foreign_keys=[seeker_id])

    __table_args__ = (
        Index(
            "uq_active_request_pair",
            "seeker_id",
            "guide_id",
            unique=True,
            sqlite_where=_ACTIVE_PREDICATE,
            postgresql_where=_ACTIVE_PREDICATE,
        ),
        Index("ix_evaluation_requests_code_guide", "verification_code", "guide_id"),
    )
