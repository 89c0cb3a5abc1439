"""
Failure taxonomy for the postcode lookup path.

Every failure carries the HTTP status it maps to, a stable `kind` string,
and a user-facing message. main.py renders them all as
    {"error": <message>, "kind": <kind>}
Raw API keys never appear in a message.
"""

from __future__ import annotations

from fastapi import status


class ApiError(Exception):
    """Base class for failures that map directly onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "InternalError"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_body(self) -> dict[str, str]:
        return {"error": self.message, "kind": self.kind}


# ── Terminal before a user is identified (never logged) ─────
class MissingKey(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "MissingKey"
    message = "API key is required"


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "Unauthorized"
    message = "Invalid API key"


class MethodNotAllowed(ApiError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    kind = "MethodNotAllowed"
    message = "Method not allowed"


# ── Terminal after a user is identified (one error record) ──
class DomainNotAllowed(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "DomainNotAllowed"
    message = "Requests from this domain are not allowed for this API key"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "NotFound"
    message = "Postcode not found"


class RateLimited(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    kind = "RateLimited"
    message = "Rate limit exceeded. Please try again later."


class ProviderError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "ProviderError"
    message = "Error fetching postcode data"


class StoreError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "StoreError"
    message = "Internal server error"
