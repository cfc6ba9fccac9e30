"""Guide credential and proximity search routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from evalgate.database import get_db
from evalgate.config import settings
from evalgate.dependencies import get_current_user_id, require_admin
from evalgate.errors import AdminAccessRequired
from evalgate.models.guide import GuideProfile, GuideStatus
from evalgate.models.user import User
from evalgate.schemas.guide import GuideOut, GuideRegister, GuideStatusUpdate, NearbyGuidesOut
from evalgate.services import proximity

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=GuideOut, status_code=status.HTTP_201_CREATED)
def register_guide(
    payload: GuideRegister,
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Register a guide credential (starts as pending). Users register themselves; admins anyone."""
    if caller_id != payload.user_id and caller_id not in settings.admin_user_ids:
        raise AdminAccessRequired("You can only register a guide profile for yourself")
    if not db.query(User).filter(User.user_id == payload.user_id).first():
        raise HTTPException(status_code=404, detail="User not found")
    if db.query(GuideProfile).filter(GuideProfile.user_id == payload.user_id).first():
        raise HTTPException(status_code=409, detail="Guide profile already exists")
    if payload.latitude is not None and payload.longitude is not None:
        proximity.validate_origin(payload.latitude, payload.longitude)

    guide = GuideProfile(**payload.model_dump(), status=GuideStatus.pending)
    db.add(guide)
    db.commit()
    db.refresh(guide)
    logger.info("Registered guide profile for user %s", payload.user_id)
    return guide


@router.patch("/{user_id}/status", response_model=GuideOut)
def set_guide_status(
    user_id: str,
    payload: GuideStatusUpdate,
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Approve or reject a guide credential. Admin only, and never for the admin's own profile."""
    if admin_id == user_id:
        raise AdminAccessRequired("You cannot change the status of your own guide profile")
    guide = db.query(GuideProfile).filter(GuideProfile.user_id == user_id).first()
    if not guide:
        raise HTTPException(status_code=404, detail="Guide profile not found")
    try:
        guide.status = GuideStatus(payload.status)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid guide status: {payload.status}")
    db.commit()
    db.refresh(guide)
    logger.info("Guide %s is now %s (set by %s)", user_id, guide.status.value, admin_id)
    return guide


@router.get("/nearby", response_model=NearbyGuidesOut)
def nearby_guides(
    lat: float = Query(...),
    lon: float = Query(...),
    radius: Optional[float] = Query(None),
    limit: Optional[int] = Query(None),
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Approved guides within ``radius`` km of (lat, lon), nearest first."""
    guides = proximity.find_nearby(
        lat,
        lon,
        proximity.load_guide_candidates(db),
        radius_km=radius,
        limit=limit,
        exclude_user_id=caller_id,
    )
    return NearbyGuidesOut(
        guides=guides,
        total=len(guides),
        search_radius_km=proximity.effective_radius(radius),
    )
