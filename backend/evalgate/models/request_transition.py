"""RequestTransition ORM model — append-only ledger of request status changes."""
import uuid
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from evalgate.database import Base
from evalgate.models.evaluation_request import RequestStatus


class RequestTransition(Base):
    __tablename__ = "request_transitions"

    transition_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_id = Column(String(36), ForeignKey("evaluation_requests.request_id"), nullable=False, index=True)
    actor_user_id = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    from_status = Column(SAEnum(RequestStatus, native_enum=False), nullable=True)
    to_status = Column(SAEnum(RequestStatus, native_enum=False), nullable=False)
    before_snapshot = Column(JSON, nullable=True)
    after_snapshot = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
