"""User ORM model — the public athletic profile of a platform member."""
import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from evalgate.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name = Column(String(100), nullable=False)
    username = Column(String(50), nullable=False, unique=True)
    primary_sport = Column(String(50), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    rank = Column(String(20), nullable=True)
    athlete_class = Column(String(20), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    gender = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
