"""Error taxonomy for survey operations.

Logic modules raise these; `app.http.errors` maps them onto HTTP responses.
Each error renders as a JSON object with an `error` message plus optional
structured extras (`details` for upstream failures, `formType` for admin
form errors).
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SurveyError(Exception):
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        details: Any = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.extra = dict(extra or {})

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        body.update(self.extra)
        return body


class ValidationError(SurveyError):
    """Missing or invalid input fields."""

    status_code = 400


class AuthenticationError(SurveyError):
    """Missing or invalid shop credential."""

    status_code = 401


class NotFoundError(SurveyError):
    status_code = 404


class ConflictError(SurveyError):
    """The shop record changed between read and write."""

    status_code = 409


class UpstreamError(SurveyError):
    """Shopify answered with GraphQL-level or field-level errors."""

    status_code = 400


class UpstreamUnavailableError(SurveyError):
    """Shopify could not be reached or answered with a non-2xx status."""

    status_code = 502

    def __init__(self, message: str, *, status_code: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        if status_code:
            self.status_code = int(status_code)


class InternalError(SurveyError):
    status_code = 500


__all__ = [
    "SurveyError",
    "ValidationError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "UpstreamError",
    "UpstreamUnavailableError",
    "InternalError",
]
