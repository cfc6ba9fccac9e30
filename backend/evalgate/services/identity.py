"""Identity and guide-credential lookups."""
from typing import Optional

from sqlalchemy.orm import Session

from evalgate.errors import GuideAccessRequired
from evalgate.models.guide import GuideProfile, GuideStatus
from evalgate.models.user import User


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.user_id == user_id).first()


def is_approved_guide(db: Session, user_id: str) -> bool:
    return db.query(GuideProfile).filter(
        GuideProfile.user_id == user_id,
        GuideProfile.status == GuideStatus.approved,
    ).first() is not None


def require_approved_guide(db: Session, user_id: str) -> None:
    if not is_approved_guide(db, user_id):
        raise GuideAccessRequired()


def display_name(user: Optional[User], fallback: str) -> str:
    return user.display_name if user else fallback
