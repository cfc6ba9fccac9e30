"""Request ledger — the only writer of EvaluationRequest rows.

Responsibilities:
- Creation guards: self-request, message length, duplicate active request, cooldown
- Pair uniqueness backed by the ``uq_active_request_pair`` partial index
- Accept/reject as a conditional UPDATE guarded on ``status = PENDING``
- Transition ledger (RequestTransitions) for every status change
- Notifications emitted only after the transition is committed
"""
import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from evalgate.config import settings
from evalgate.errors import (
    AlreadyResolved,
    CooldownActive,
    DuplicateActiveRequest,
    GuideNotFound,
    InvalidSchedulePayload,
    NotOwnedByCaller,
    RequestNotFound,
    SelfRequestNotAllowed,
    UserNotFound,
    ValidationFailed,
)
from evalgate.models.evaluation_request import (
    ACTIVE_STATUSES,
    VISIBLE_STATUSES,
    EvaluationRequest,
    RequestStatus,
)
from evalgate.models.request_transition import RequestTransition
from evalgate.services import notifications
from evalgate.services.clock import as_utc, utcnow
from evalgate.services.codes import VerificationIssuer
from evalgate.services.identity import display_name, get_user, is_approved_guide, require_approved_guide
from evalgate.services.notifications import DatabaseNotificationSink, NotificationSink, emit_safely

logger = logging.getLogger(__name__)

MESSAGE_MIN, MESSAGE_MAX = 10, 150
MODERATOR_MESSAGE_MAX = 500
LOCATION_MAX = 200
EQUIPMENT_MAX = 300

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")

ACCEPT = "ACCEPT"
REJECT = "REJECT"

_DUPLICATE_MESSAGES = {
    RequestStatus.pending: "You already have a pending request with this guide",
    RequestStatus.accepted: "You already have an accepted evaluation with this guide",
}


def request_snapshot(req: EvaluationRequest) -> dict[str, Any]:
    """Serialize a request to a JSON-safe dict for the transition ledger."""
    return {
        "request_id": req.request_id,
        "seeker_id": req.seeker_id,
        "guide_id": req.guide_id,
        "status": req.status.value if req.status else None,
        "scheduled_date": req.scheduled_date.isoformat() if req.scheduled_date else None,
        "scheduled_time": req.scheduled_time,
        "location": req.location,
        "has_code": req.verification_code is not None,
        "updated_at": req.updated_at.isoformat() if req.updated_at else None,
    }


def record_transition(
    db: Session,
    req: EvaluationRequest,
    actor_user_id: Optional[str],
    from_status: Optional[RequestStatus],
    before: Optional[dict[str, Any]],
) -> None:
    db.add(RequestTransition(
        request_id=req.request_id,
        actor_user_id=actor_user_id,
        from_status=from_status,
        to_status=req.status,
        before_snapshot=before,
        after_snapshot=request_snapshot(req),
    ))


def parse_equipment(raw: Optional[str]) -> list[str]:
    """Split comma-separated equipment into trimmed, non-empty items."""
    if not raw or not raw.strip():
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _find_active_request(db: Session, seeker_id: str, guide_id: str) -> Optional[EvaluationRequest]:
    return db.query(EvaluationRequest).filter(
        EvaluationRequest.seeker_id == seeker_id,
        EvaluationRequest.guide_id == guide_id,
        EvaluationRequest.status.in_(ACTIVE_STATUSES),
    ).first()


def _duplicate_error(existing: Optional[EvaluationRequest]) -> DuplicateActiveRequest:
    if existing is None:
        return DuplicateActiveRequest()
    return DuplicateActiveRequest(
        _DUPLICATE_MESSAGES.get(existing.status),
        existing_request_id=existing.request_id,
        request_status=existing.status.value,
    )


def cooldown_until(db: Session, seeker_id: str, guide_id: str, now: datetime) -> Optional[datetime]:
    """End of the cooldown window after the pair's latest rejection, if still running."""
    last_rejection = (
        db.query(EvaluationRequest)
        .filter(
            EvaluationRequest.seeker_id == seeker_id,
            EvaluationRequest.guide_id == guide_id,
            EvaluationRequest.status == RequestStatus.rejected,
        )
        .order_by(EvaluationRequest.updated_at.desc())
        .first()
    )
    if last_rejection is None or last_rejection.updated_at is None:
        return None
    until = as_utc(last_rejection.updated_at) + timedelta(days=settings.COOLDOWN_DAYS)
    return until if as_utc(now) < until else None


def outstanding_codes(db: Session, guide_id: str) -> set[int]:
    """Codes on the guide's ACCEPTED requests; a new code must avoid these."""
    rows = db.query(EvaluationRequest.verification_code).filter(
        EvaluationRequest.guide_id == guide_id,
        EvaluationRequest.status == RequestStatus.accepted,
        EvaluationRequest.verification_code.isnot(None),
    ).all()
    return {code for (code,) in rows}


def create_request(
    db: Session,
    seeker_id: str,
    guide_id: str,
    message: str,
    *,
    now: Optional[datetime] = None,
    sink: Optional[NotificationSink] = None,
) -> EvaluationRequest:
    """Create a PENDING evaluation request from a seeker to a guide."""
    if seeker_id == guide_id:
        raise SelfRequestNotAllowed()

    text = (message or "").strip()
    if not MESSAGE_MIN <= len(text) <= MESSAGE_MAX:
        raise ValidationFailed(
            f"Message must be between {MESSAGE_MIN} and {MESSAGE_MAX} characters",
            field="message",
        )

    seeker = get_user(db, seeker_id)
    if seeker is None:
        raise UserNotFound()
    if not is_approved_guide(db, guide_id):
        raise GuideNotFound()

    existing = _find_active_request(db, seeker_id, guide_id)
    if existing is not None:
        raise _duplicate_error(existing)

    now = as_utc(now or utcnow())
    until = cooldown_until(db, seeker_id, guide_id, now)
    if until is not None:
        raise CooldownActive(
            f"Please wait {settings.COOLDOWN_DAYS} days before sending another request to this guide",
            cooldown_until=until.isoformat(),
        )

    req = EvaluationRequest(
        seeker_id=seeker_id,
        guide_id=guide_id,
        status=RequestStatus.pending,
        message=text,
        created_at=now,
        updated_at=now,
    )
    db.add(req)
    try:
        db.flush()
        record_transition(db, req, actor_user_id=seeker_id, from_status=None, before=None)
        db.commit()
    except IntegrityError:
        # Lost the race to a concurrent creation for the same pair
        db.rollback()
        winner = _find_active_request(db, seeker_id, guide_id)
        logger.warning(
            "Concurrent request creation for seeker %s / guide %s rejected by unique index",
            seeker_id, guide_id,
        )
        raise _duplicate_error(winner)

    db.refresh(req)
    logger.info("EvaluationRequest %s created by seeker %s for guide %s", req.request_id, seeker_id, guide_id)

    emit_safely(
        sink or DatabaseNotificationSink(db),
        **notifications.request_created(req, display_name(seeker, seeker_id), seeker.primary_sport),
    )
    return req


def _parse_decision(decision: str) -> str:
    value = (decision or "").strip().upper()
    if value not in (ACCEPT, REJECT):
        raise InvalidSchedulePayload("Action must be ACCEPT or REJECT", fields={"action": "invalid"})
    return value


def _parse_scheduled_date(value: Any) -> Optional[date]:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _parse_accept_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    errors: dict[str, str] = {}

    message = (payload.get("message") or "").strip()
    if not 1 <= len(message) <= MODERATOR_MESSAGE_MAX:
        errors["message"] = f"Message is required (max {MODERATOR_MESSAGE_MAX} characters)"

    location = (payload.get("location") or "").strip()
    if not 1 <= len(location) <= LOCATION_MAX:
        errors["location"] = f"Location is required (max {LOCATION_MAX} characters)"

    scheduled_date = _parse_scheduled_date(payload.get("scheduled_date"))
    if scheduled_date is None:
        errors["scheduled_date"] = "Invalid date format, expected YYYY-MM-DD"

    scheduled_time = None
    match = TIME_RE.match((payload.get("scheduled_time") or "").strip())
    if match:
        scheduled_time = f"{int(match.group(1)):02d}:{match.group(2)}"
    else:
        errors["scheduled_time"] = "Invalid time format, expected HH:MM (24h)"

    raw_equipment = payload.get("equipment") or ""
    if len(raw_equipment) > EQUIPMENT_MAX:
        errors["equipment"] = f"Equipment list too long (max {EQUIPMENT_MAX} characters)"

    if errors:
        raise InvalidSchedulePayload(fields=errors)

    return {
        "moderator_message": message,
        "location": location,
        "scheduled_date": scheduled_date,
        "scheduled_time": scheduled_time,
        "equipment": parse_equipment(raw_equipment),
    }


def _parse_reject_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    message = (payload.get("message") or "").strip()
    if len(message) > MODERATOR_MESSAGE_MAX:
        raise InvalidSchedulePayload(
            fields={"message": f"Message too long (max {MODERATOR_MESSAGE_MAX} characters)"},
        )
    return {"moderator_message": message} if message else {}


def resolve_request(
    db: Session,
    request_id: str,
    guide_id: str,
    decision: str,
    payload: Mapping[str, Any],
    *,
    now: Optional[datetime] = None,
    issuer: Optional[VerificationIssuer] = None,
    sink: Optional[NotificationSink] = None,
) -> EvaluationRequest:
    """Accept (with schedule + code) or reject a PENDING request owned by the guide."""
    require_approved_guide(db, guide_id)

    req = db.query(EvaluationRequest).filter(EvaluationRequest.request_id == request_id).first()
    if req is None:
        raise RequestNotFound()
    if req.guide_id != guide_id:
        raise NotOwnedByCaller()
    if req.status != RequestStatus.pending:
        raise AlreadyResolved(f"Evaluation request is already {req.status.value}", request_status=req.status.value)

    decision = _parse_decision(decision)
    if decision == ACCEPT:
        values = _parse_accept_payload(payload)
        new_status = RequestStatus.accepted
    else:
        values = _parse_reject_payload(payload)
        new_status = RequestStatus.rejected

    before = request_snapshot(req)
    if decision == ACCEPT:
        values["verification_code"] = (issuer or VerificationIssuer()).issue(
            values["scheduled_date"], exclude=outstanding_codes(db, guide_id),
        )
    values["status"] = new_status
    values["updated_at"] = as_utc(now or utcnow())

    rows = (
        db.query(EvaluationRequest)
        .filter(
            EvaluationRequest.request_id == request_id,
            EvaluationRequest.guide_id == guide_id,
            EvaluationRequest.status == RequestStatus.pending,
        )
        .update(values, synchronize_session=False)
    )
    if rows == 0:
        db.rollback()
        current = db.query(EvaluationRequest).filter(EvaluationRequest.request_id == request_id).first()
        if current is None:
            raise RequestNotFound()
        logger.warning("Resolve of request %s by guide %s lost to a concurrent change", request_id, guide_id)
        raise AlreadyResolved(
            f"Evaluation request is already {current.status.value}", request_status=current.status.value,
        )

    db.refresh(req)
    record_transition(db, req, actor_user_id=guide_id, from_status=RequestStatus.pending, before=before)
    db.commit()
    db.refresh(req)
    logger.info("EvaluationRequest %s %s by guide %s", request_id, new_status.value, guide_id)

    emit_safely(
        sink or DatabaseNotificationSink(db),
        **notifications.request_resolved(req, display_name(get_user(db, guide_id), guide_id)),
    )
    return req


def list_for_seeker(db: Session, seeker_id: str) -> list[EvaluationRequest]:
    """Requests the seeker has sent, newest first."""
    return (
        db.query(EvaluationRequest)
        .filter(
            EvaluationRequest.seeker_id == seeker_id,
            EvaluationRequest.status.in_(VISIBLE_STATUSES),
        )
        .order_by(EvaluationRequest.created_at.desc())
        .all()
    )


def list_for_guide(db: Session, guide_id: str) -> list[EvaluationRequest]:
    """Incoming requests for a guide, PENDING first, then newest first."""
    pending_first = case((EvaluationRequest.status == RequestStatus.pending, 0), else_=1)
    return (
        db.query(EvaluationRequest)
        .filter(
            EvaluationRequest.guide_id == guide_id,
            EvaluationRequest.status.in_(VISIBLE_STATUSES),
        )
        .order_by(pending_first, EvaluationRequest.created_at.desc())
        .all()
    )


def status_map(requests: Iterable[EvaluationRequest], key: str = "guide_id") -> dict[str, dict[str, Any]]:
    """Map counterparty id -> latest request summary."""
    result: dict[str, dict[str, Any]] = {}
    for req in sorted(requests, key=lambda r: as_utc(r.created_at)):
        result[getattr(req, key)] = {
            "request_id": req.request_id,
            "status": req.status.value,
            "created_at": req.created_at,
            "updated_at": req.updated_at,
        }
    return result


def request_stats(requests: Iterable[EvaluationRequest]) -> dict[str, int]:
    requests = list(requests)
    return {
        "total": len(requests),
        "pending": sum(1 for r in requests if r.status == RequestStatus.pending),
        "accepted": sum(1 for r in requests if r.status == RequestStatus.accepted),
        "rejected": sum(1 for r in requests if r.status == RequestStatus.rejected),
    }


def has_verified_evaluation(db: Session, guide_id: str, seeker_id: str) -> bool:
    """Whether the guide may enter performance data for the seeker."""
    return db.query(EvaluationRequest).filter(
        EvaluationRequest.guide_id == guide_id,
        EvaluationRequest.seeker_id == seeker_id,
        EvaluationRequest.status == RequestStatus.verified,
    ).first() is not None


def expire_stale_requests(db: Session, *, now: Optional[datetime] = None) -> int:
    """Cancel PENDING/ACCEPTED requests untouched for REQUEST_EXPIRY_DAYS.

    Disabled (returns 0) unless REQUEST_EXPIRY_DAYS is configured.
    """
    days = settings.REQUEST_EXPIRY_DAYS
    if not days:
        return 0

    now = as_utc(now or utcnow())
    cutoff = now - timedelta(days=days)
    stale = db.query(EvaluationRequest).filter(
        EvaluationRequest.status.in_(ACTIVE_STATUSES),
        EvaluationRequest.updated_at < cutoff,
    ).all()

    expired = 0
    for req in stale:
        before = request_snapshot(req)
        from_status = req.status
        rows = (
            db.query(EvaluationRequest)
            .filter(
                EvaluationRequest.request_id == req.request_id,
                EvaluationRequest.status == from_status,
            )
            .update(
                {"status": RequestStatus.cancelled, "verification_code": None, "updated_at": now},
                synchronize_session=False,
            )
        )
        if rows == 0:
            continue
        db.refresh(req)
        record_transition(db, req, actor_user_id=None, from_status=from_status, before=before)
        expired += 1

    db.commit()
    if expired:
        logger.info("Expired %d stale evaluation request(s) older than %d days", expired, days)
    return expired
