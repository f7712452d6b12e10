from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    status_code: int


class InvalidRequestError(ApiError):
    """Rejected before any store access; never retried."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__("INVALID_REQUEST", f"{field} {reason}", 422)
        self.field = field
        self.reason = reason


class UpstreamUnavailableError(ApiError):
    def __init__(self, message: str = "Facility data is temporarily unavailable") -> None:
        super().__init__("UPSTREAM_UNAVAILABLE", message, 503)


class InternalError(ApiError):
    def __init__(self, message: str = "Search failed") -> None:
        super().__init__("INTERNAL_ERROR", message, 500)
