"""Proximity matcher — ranks approved guides by great-circle distance."""
import logging
import math
from typing import Iterable, Optional

from sqlalchemy.orm import Session, joinedload

from evalgate.config import settings
from evalgate.errors import InvalidCoordinates
from evalgate.models.guide import GuideProfile, GuideStatus
from evalgate.schemas.guide import GuideCandidate, NearbyGuide

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def validate_origin(lat: float, lon: float) -> None:
    if lat is None or lon is None or math.isnan(lat) or math.isnan(lon):
        raise InvalidCoordinates("Location coordinates required")
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise InvalidCoordinates(lat=lat, lon=lon)


def effective_radius(radius_km: Optional[float]) -> float:
    if radius_km is None:
        return settings.NEARBY_DEFAULT_RADIUS_KM
    if radius_km <= 0:
        return settings.NEARBY_FALLBACK_RADIUS_KM
    return radius_km


def effective_limit(limit: Optional[int]) -> int:
    if limit is None or limit <= 0:
        return settings.NEARBY_DEFAULT_LIMIT
    return min(limit, settings.NEARBY_MAX_LIMIT)


def find_nearby(
    origin_lat: float,
    origin_lon: float,
    candidates: Iterable[GuideCandidate],
    radius_km: Optional[float] = None,
    limit: Optional[int] = None,
    exclude_user_id: Optional[str] = None,
) -> list[NearbyGuide]:
    """Filter candidates within the radius and sort them nearest first.

    Pure: no I/O. Candidates without coordinates are skipped, as is the caller.
    """
    validate_origin(origin_lat, origin_lon)
    radius = effective_radius(radius_km)

    matches = []
    for candidate in candidates:
        if candidate.latitude is None or candidate.longitude is None:
            continue
        if exclude_user_id is not None and candidate.user_id == exclude_user_id:
            continue
        distance = haversine_km(origin_lat, origin_lon, candidate.latitude, candidate.longitude)
        if distance <= radius:
            matches.append((distance, candidate))

    matches.sort(key=lambda pair: pair[0])
    return [
        NearbyGuide(**candidate.model_dump(), distance_km=round(distance, 2))
        for distance, candidate in matches[:effective_limit(limit)]
    ]


def load_guide_candidates(db: Session) -> list[GuideCandidate]:
    """Approved guides with a known coordinate."""
    guides = (
        db.query(GuideProfile)
        .options(joinedload(GuideProfile.user))
        .filter(
            GuideProfile.status == GuideStatus.approved,
            GuideProfile.latitude.isnot(None),
            GuideProfile.longitude.isnot(None),
        )
        .all()
    )
    return [
        GuideCandidate(
            user_id=g.user_id,
            display_name=g.user.display_name if g.user else g.user_id,
            avatar_url=g.user.avatar_url if g.user else None,
            rank=g.user.rank if g.user else None,
            athlete_class=g.user.athlete_class if g.user else None,
            specialty=g.specialty,
            city=g.city,
            state=g.state,
            latitude=g.latitude,
            longitude=g.longitude,
        )
        for g in guides
    ]
