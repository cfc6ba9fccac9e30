"""Verification code redemption and cleanup.

Redemption is a read-then-transition guarded on ``status = ACCEPTED``:
the code must belong to an ACCEPTED request of the calling guide, and today
(calendar date in the configured zone) must be the scheduled day. Callers
never learn why a lookup failed; the server log carries the detail.
"""
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from evalgate.errors import DateMismatch, InvalidCode, SeekerNotFound, ValidationFailed
from evalgate.models.evaluation_request import EvaluationRequest, RequestStatus
from evalgate.models.request_transition import RequestTransition
from evalgate.services.clock import as_utc, human_date, local_today, utcnow
from evalgate.services.codes import is_well_formed, mask_code
from evalgate.services.identity import get_user, require_approved_guide
from evalgate.services.request_ledger import record_transition, request_snapshot

logger = logging.getLogger(__name__)


def athlete_snapshot(user) -> dict[str, Any]:
    """Public athletic profile fields shown to the guide on site."""
    return {
        "user_id": user.user_id,
        "display_name": user.display_name,
        "username": user.username,
        "primary_sport": user.primary_sport,
        "avatar_url": user.avatar_url,
        "rank": user.rank,
        "athlete_class": user.athlete_class,
        "city": user.city,
        "state": user.state,
        "country": user.country,
        "gender": user.gender,
    }


def redeem_code(
    db: Session,
    guide_id: str,
    code: Any,
    *,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
) -> dict[str, Any]:
    """Redeem a verification code on the scheduled day; marks the request VERIFIED."""
    require_approved_guide(db, guide_id)

    if not is_well_formed(code):
        raise ValidationFailed("Please enter a valid 6-digit verification code", field="code")

    # Codes are not unique, so one code may match several of this guide's requests
    matches = (
        db.query(EvaluationRequest)
        .filter(
            EvaluationRequest.verification_code == code,
            EvaluationRequest.guide_id == guide_id,
            EvaluationRequest.status == RequestStatus.accepted,
        )
        .order_by(EvaluationRequest.scheduled_date, EvaluationRequest.created_at)
        .all()
    )
    if not matches:
        logger.warning("Redemption rejected: no ACCEPTED request for code %s and guide %s", mask_code(code), guide_id)
        raise InvalidCode()

    now = as_utc(now or utcnow())
    today = local_today(now, tz_name)
    due = [r for r in matches if r.scheduled_date == today]
    if len(due) > 1:
        logger.warning(
            "Redemption rejected: code %s matches %d requests of guide %s scheduled %s",
            mask_code(code), len(due), guide_id, today,
        )
        raise InvalidCode()

    req = due[0] if due else matches[0]
    if req.scheduled_date != today:
        logger.info(
            "Redemption for request %s refused: scheduled %s, today %s",
            req.request_id, req.scheduled_date, today,
        )
        raise DateMismatch(
            f"This evaluation is scheduled for {human_date(req.scheduled_date)}. "
            f"Verification is only allowed on the scheduled date. Today is {human_date(today)}.",
            scheduled_date=req.scheduled_date.isoformat(),
            current_date=today.isoformat(),
            scheduled_date_display=human_date(req.scheduled_date),
            current_date_display=human_date(today),
            request_id=req.request_id,
        )

    seeker = get_user(db, req.seeker_id)
    if seeker is None:
        raise SeekerNotFound(user_id=req.seeker_id, request_id=req.request_id)

    before = request_snapshot(req)
    rows = (
        db.query(EvaluationRequest)
        .filter(
            EvaluationRequest.request_id == req.request_id,
            EvaluationRequest.status == RequestStatus.accepted,
        )
        .update(
            {"status": RequestStatus.verified, "verified_at": now, "updated_at": now},
            synchronize_session=False,
        )
    )
    if rows == 0:
        db.rollback()
        logger.warning("Redemption lost race for request %s (code %s)", req.request_id, mask_code(code))
        raise InvalidCode()

    db.refresh(req)
    record_transition(db, req, actor_user_id=guide_id, from_status=RequestStatus.accepted, before=before)
    db.commit()
    logger.info("EvaluationRequest %s verified by guide %s", req.request_id, guide_id)

    return {
        "request_id": req.request_id,
        "scheduled_date": req.scheduled_date,
        "athlete": athlete_snapshot(seeker),
    }


def cleanup_stale_code(
    db: Session,
    guide_id: str,
    code: Any,
    seeker_id: Optional[str] = None,
) -> int:
    """Delete this guide's outstanding (ACCEPTED) request(s) carrying ``code``.

    VERIFIED requests keep their code but are never touched. Returns how many
    requests went.
    """
    require_approved_guide(db, guide_id)

    if not is_well_formed(code):
        raise ValidationFailed("Verification code is required", field="code")

    query = db.query(EvaluationRequest).filter(
        EvaluationRequest.verification_code == code,
        EvaluationRequest.guide_id == guide_id,
        EvaluationRequest.status == RequestStatus.accepted,
    )
    if seeker_id:
        query = query.filter(EvaluationRequest.seeker_id == seeker_id)
    request_ids = [row.request_id for row in query.all()]
    if not request_ids:
        logger.info("Cleanup for code %s by guide %s matched nothing", mask_code(code), guide_id)
        return 0

    db.query(RequestTransition).filter(
        RequestTransition.request_id.in_(request_ids)
    ).delete(synchronize_session=False)
    deleted = db.query(EvaluationRequest).filter(
        EvaluationRequest.request_id.in_(request_ids)
    ).delete(synchronize_session=False)
    db.commit()
    logger.info("Cleanup for code %s by guide %s deleted %d request(s)", mask_code(code), guide_id, deleted)
    return deleted
