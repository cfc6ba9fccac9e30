"""Evaluation request API routes — request, accept/reject, verify on site."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from evalgate.database import get_db
from evalgate.dependencies import get_current_user_id, require_admin
from evalgate.schemas.evaluation_request import (
    CleanupIn,
    CleanupOut,
    EligibilityOut,
    EvaluationRequestCreate,
    EvaluationRequestOut,
    EvaluationRequestResolve,
    ExpireOut,
    GuideInboxItem,
    GuideInboxOut,
    RedeemIn,
    RedeemOut,
    ResolveOut,
    SeekerRequestsOut,
)
from evalgate.services import request_ledger, verification
from evalgate.services.identity import require_approved_guide

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EvaluationRequestOut, status_code=status.HTTP_201_CREATED)
def create_evaluation_request(
    payload: EvaluationRequestCreate,
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Seeker asks a guide for an in-person evaluation."""
    return request_ledger.create_request(db, caller_id, payload.guide_id, payload.message)


@router.get("/mine", response_model=SeekerRequestsOut)
def my_requests(caller_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Requests the caller has sent, plus a status map keyed by guide id."""
    requests = request_ledger.list_for_seeker(db, caller_id)
    return SeekerRequestsOut(
        requests=[EvaluationRequestOut.model_validate(r) for r in requests],
        request_status_map=request_ledger.status_map(requests, key="guide_id"),
        total_requests=len(requests),
    )


@router.get("/incoming", response_model=GuideInboxOut)
def incoming_requests(caller_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Requests addressed to the calling guide, pending first."""
    require_approved_guide(db, caller_id)
    requests = request_ledger.list_for_guide(db, caller_id)
    return GuideInboxOut(
        requests=[GuideInboxItem.model_validate(r) for r in requests],
        stats=request_ledger.request_stats(requests),
        guide_id=caller_id,
    )


@router.put("/{request_id}", response_model=ResolveOut)
def resolve_evaluation_request(
    request_id: str,
    payload: EvaluationRequestResolve,
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Guide accepts (with schedule) or rejects a pending request."""
    req = request_ledger.resolve_request(
        db,
        request_id,
        caller_id,
        payload.action,
        payload.model_dump(exclude={"action"}),
    )
    return ResolveOut(
        request=EvaluationRequestOut.model_validate(req),
        verification_code=req.verification_code,
        message=f"Request {req.status.value.lower()} successfully",
    )


@router.post("/verify", response_model=RedeemOut)
def verify_code(
    payload: RedeemIn,
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Guide redeems the athlete's verification code on the scheduled day."""
    return verification.redeem_code(db, caller_id, payload.code)


@router.post("/cleanup", response_model=CleanupOut)
def cleanup_code(
    payload: CleanupIn,
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete an outstanding request/code pair. Reports success even when nothing matched."""
    deleted = verification.cleanup_stale_code(db, caller_id, payload.code, seeker_id=payload.seeker_id)
    return CleanupOut(message="Verification code cleaned up", deleted_count=deleted)


@router.post("/expire", response_model=ExpireOut)
def expire_requests(admin_id: str = Depends(require_admin), db: Session = Depends(get_db)):
    """Cancel stale requests when REQUEST_EXPIRY_DAYS is configured; otherwise a no-op. Admin only."""
    expired = request_ledger.expire_stale_requests(db)
    logger.info("Expiry sweep run by %s cancelled %d request(s)", admin_id, expired)
    return ExpireOut(expired_count=expired)


@router.get("/eligibility/{seeker_id}", response_model=EligibilityOut)
def data_entry_eligibility(
    seeker_id: str,
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Whether the calling guide has a verified evaluation with the seeker."""
    return EligibilityOut(
        guide_id=caller_id,
        seeker_id=seeker_id,
        eligible=request_ledger.has_verified_evaluation(db, caller_id, seeker_id),
    )
