"""GuideProfile ORM model — the evaluation credential a user holds."""
import enum
from sqlalchemy import Column, String, DateTime, Float, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from evalgate.database import Base


class GuideStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class GuideProfile(Base):
    __tablename__ = "guide_profiles"

    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    status = Column(SAEnum(GuideStatus, native_enum=False), nullable=False, default=GuideStatus.pending)
    specialty = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")
