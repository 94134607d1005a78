"""
Error taxonomy for GopPrep.

Services raise these; ``main.py`` turns them into ``{"message": ...}`` JSON
responses with the matching status code.
"""

from typing import Any, Dict, Optional


class GopPrepError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        return {"message": self.message}


class AuthenticationError(GopPrepError):
    status_code = 401
    default_message = "Not authenticated"


class NotFoundError(GopPrepError):
    status_code = 404
    default_message = "Not found"


class ForbiddenError(GopPrepError):
    status_code = 403
    default_message = "Unauthorized"


class InvalidStateError(GopPrepError):
    """State machine violation (already submitted, already paused, ...)."""
    status_code = 400
    default_message = "Invalid state"


class NotAvailableError(GopPrepError):
    """Exam cannot be started right now."""

    status_code = 400

    NOT_STARTED = "not_started"
    EXPIRED = "expired"
    CATEGORY = "category"
    UNPUBLISHED = "unpublished"

    MESSAGES = {
        NOT_STARTED: "Exam has not started yet",
        EXPIRED: "Exam has expired",
        CATEGORY: "Exam is not part of your exam preparations",
        UNPUBLISHED: "Exam is not published",
    }

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(self.MESSAGES.get(reason, "Exam is not available"))

    def to_response(self) -> Dict[str, Any]:
        return {"message": self.message, "reason": self.reason}


class QuotaExceededError(GopPrepError):
    status_code = 403
    default_message = "Weekly limit reached. Upgrade to premium for unlimited exams."


class ValidationError(GopPrepError):
    status_code = 400
    default_message = "Invalid input"


class NotConfiguredError(GopPrepError):
    """An optional third-party collaborator has no credentials."""
    status_code = 503
    default_message = "Service not configured"
