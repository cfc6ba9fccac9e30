"""Notification payloads for request lifecycle events.

The workflow only builds the payload and hands it to a sink after the state
transition is committed. A sink failure is logged and never undoes the
transition.
"""
import logging
from typing import Any, Optional, Protocol

from sqlalchemy.orm import Session

from evalgate.models.evaluation_request import EvaluationRequest
from evalgate.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

REQUEST_TYPE = "evaluation_request"


class NotificationSink(Protocol):
    def emit(
        self,
        recipient_id: str,
        actor_id: Optional[str],
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any],
    ) -> None:
        ...


class DatabaseNotificationSink:
    """Writes notifications to the outbox table for the delivery service."""

    def __init__(self, db: Session):
        self.db = db

    def emit(self, recipient_id, actor_id, type, title, message, data) -> None:
        self.db.add(Notification(
            recipient_id=recipient_id,
            actor_id=actor_id,
            type=type,
            title=title,
            message=message,
            data=data,
        ))
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


def emit_safely(sink: NotificationSink, **payload: Any) -> bool:
    """Hand a payload to the sink; failures are logged, never raised."""
    try:
        sink.emit(**payload)
    except Exception:
        logger.exception(
            "Failed to emit %s notification to %s", payload.get("type"), payload.get("recipient_id"),
        )
        return False
    return True


def request_created(req: EvaluationRequest, seeker_name: str, seeker_sport: Optional[str]) -> dict[str, Any]:
    return {
        "recipient_id": req.guide_id,
        "actor_id": req.seeker_id,
        "type": NotificationType.stat_update_request,
        "title": "New Evaluation Request",
        "message": f"{seeker_name} requested an evaluation",
        "data": {
            "requestId": req.request_id,
            "requestType": REQUEST_TYPE,
            "userSport": seeker_sport,
        },
    }


def request_resolved(req: EvaluationRequest, guide_name: str) -> dict[str, Any]:
    """Payload for an accept or reject; accepted ones carry the schedule and code."""
    accepted = req.verification_code is not None
    action_text = "accepted" if accepted else "rejected"
    message = f"{guide_name} {action_text} your evaluation request"
    data: dict[str, Any] = {
        "requestId": req.request_id,
        "action": req.status.value,
        "guideId": req.guide_id,
        "requestType": REQUEST_TYPE,
    }
    if accepted:
        scheduled = req.scheduled_date.isoformat()
        message += (
            f". Meeting scheduled for {scheduled} at {req.scheduled_time}."
            f" Location: {req.location}. Verification code: {req.verification_code}"
        )
        data.update({
            "location": req.location,
            "scheduledDate": scheduled,
            "scheduledTime": req.scheduled_time,
            "code": req.verification_code,
            "equipment": list(req.equipment or []),
        })
    if req.moderator_message:
        message += f'. Message: "{req.moderator_message}"'

    return {
        "recipient_id": req.seeker_id,
        "actor_id": req.guide_id,
        "type": NotificationType.stat_update_approved if accepted else NotificationType.stat_update_denied,
        "title": f"Evaluation Request {action_text.capitalize()}",
        "message": message,
        "data": data,
    }
