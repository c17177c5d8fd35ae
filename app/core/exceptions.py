"""Domain exceptions raised by services and translated to HTTP responses.

Every exception carries the HTTP status it maps to and optional ``extra``
fields merged into the ``{"error": ...}`` response body.
"""

from __future__ import annotations

from typing import Any, Optional

QUOTA_SUGGESTIONS = [
    "Wait a few minutes and try again",
    "Try a shorter or simpler topic",
    "Contact the administrator if the problem persists",
]


class StudyFlowError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.extra = dict(extra or {})

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}


class ValidationError(StudyFlowError):
    status_code = 400
    error_code = "validation_error"


class AuthorizationError(StudyFlowError):
    """The resource exists but belongs to somebody else."""

    status_code = 403
    error_code = "forbidden"


class NotFoundError(StudyFlowError):
    status_code = 404
    error_code = "not_found"


class MaterialEmptyError(ValidationError):
    """The study material sent for generation was blank."""

    error_code = "material_empty"

    def __init__(self, message: str = "Material text is empty"):
        super().__init__(message)


class QuotaExceededError(StudyFlowError):
    """The LLM provider refused the request because its allowance is spent.

    Never retried; surfaced as HTTP 429 with user-facing suggestions.
    """

    status_code = 429
    error_code = "api_quota_exceeded"

    def __init__(self, message: str = "API_QUOTA_EXCEEDED", *, details: Optional[str] = None):
        super().__init__(message)
        self.details = details

    def to_payload(self, error: str = "AI service quota exceeded") -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": error,
            "message": "The AI service has reached its usage limit. Please try again later.",
            "suggestions": list(QUOTA_SUGGESTIONS),
        }
        if self.details:
            payload["details"] = self.details
        return payload


class LLMResponseError(StudyFlowError):
    """The model answered but the answer could not be used.

    ``reason`` is the tagged failure (for instance ``no_json``) so callers and
    tests can tell the cases apart without matching on the message.
    """

    status_code = 500
    error_code = "llm_response_error"

    def __init__(self, message: str, *, reason: Optional[str] = None):
        super().__init__(message, extra={"reason": reason} if reason else None)
        self.reason = reason
