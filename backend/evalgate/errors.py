"""Typed errors for the evaluation workflow.

Every business failure is an ``EvaluationError``. They are FastAPI
``HTTPException`` subclasses, so services raise them directly and the
framework renders ``{"detail": {"error_type": ..., "message": ..., ...}}``.
Anything extra passed as keyword arguments lands in the detail payload and
must be JSON-safe.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class EvaluationError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "EVALUATION_ERROR"
    default_message = "Evaluation request could not be processed"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(
            status_code=type(self).status_code,
            detail={"error_type": self.error_type, "message": self.message, **details},
        )


class ValidationFailed(EvaluationError):
    error_type = "VALIDATION_ERROR"
    default_message = "Invalid request data"


class InvalidCoordinates(EvaluationError):
    error_type = "INVALID_COORDINATES"
    default_message = "Location coordinates are out of range"


class SelfRequestNotAllowed(EvaluationError):
    error_type = "SELF_REQUEST_NOT_ALLOWED"
    default_message = "You cannot request an evaluation from yourself"


class UserNotFound(EvaluationError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "USER_NOT_FOUND"
    default_message = "User not found"


class SeekerNotFound(EvaluationError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "EXPIRED_REQUEST"
    default_message = "The athlete associated with this evaluation request no longer exists"


class GuideNotFound(EvaluationError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "GUIDE_NOT_FOUND"
    default_message = "Guide not found"


class DuplicateActiveRequest(EvaluationError):
    status_code = status.HTTP_409_CONFLICT
    error_type = "DUPLICATE_ACTIVE_REQUEST"
    default_message = "You already have a request with this guide"


class CooldownActive(EvaluationError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_type = "COOLDOWN_ACTIVE"
    default_message = "Please wait before sending another request to this guide"


class RequestNotFound(EvaluationError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "REQUEST_NOT_FOUND"
    default_message = "Evaluation request not found"


class NotOwnedByCaller(EvaluationError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "NOT_OWNED_BY_CALLER"
    default_message = "This evaluation request belongs to another guide"


class AlreadyResolved(EvaluationError):
    status_code = status.HTTP_409_CONFLICT
    error_type = "ALREADY_RESOLVED"
    default_message = "Evaluation request has already been processed"


class InvalidSchedulePayload(EvaluationError):
    error_type = "INVALID_SCHEDULE_PAYLOAD"
    default_message = "Invalid scheduling data"


class GuideAccessRequired(EvaluationError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "GUIDE_ACCESS_REQUIRED"
    default_message = "Guide access required"


class AdminAccessRequired(EvaluationError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "ADMIN_ACCESS_REQUIRED"
    default_message = "Administrator access required"


class InvalidCode(EvaluationError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "INVALID_CODE"
    default_message = "No matching accepted evaluation found for this verification code"


class DateMismatch(EvaluationError):
    error_type = "DATE_MISMATCH"
    default_message = "Verification is only allowed on the scheduled date"


class StoreUnavailable(EvaluationError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "TRANSIENT_FAILURE"
    default_message = "The data store is temporarily unavailable. Please try again."
