"""Notification ORM model — outbox rows picked up by the delivery service."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, Boolean, JSON, Enum as SAEnum
from sqlalchemy.sql import func
from evalgate.database import Base


class NotificationType(str, enum.Enum):
    stat_update_request = "STAT_UPDATE_REQUEST"
    stat_update_approved = "STAT_UPDATE_APPROVED"
    stat_update_denied = "STAT_UPDATE_DENIED"


class Notification(Base):
    __tablename__ = "notifications"

    notification_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id = Column(String(36), nullable=False, index=True)
    actor_id = Column(String(36), nullable=True)
    type = Column(SAEnum(NotificationType, native_enum=False), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(String(1000), nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
