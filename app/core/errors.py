"""Application-level exception types.

Domain errors shared by services, adapters and the HTTP layer. Fetch failures
form their own small hierarchy so the retry loop can treat them uniformly
while callers can still tell a dead connection from a bad status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    status_text: str
    url: str
    attempts: int
    level: str
    action: str
    allowed_values: list[str]
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class FetchError(AppError):
    """Raised when a remote read fails after all attempts."""


class NetworkError(FetchError):
    """Transport-level failure: no response was received."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            code="network_error",
            message=f"Network error fetching {url}: {reason}",
            details={"url": url},
        )


class HttpError(FetchError):
    """The server responded with a non-success status."""

    def __init__(self, url: str, status: int, status_text: str) -> None:
        self.status = status
        self.status_text = status_text
        super().__init__(
            code="http_error",
            message=f"HTTP {status}: {status_text}",
            details={"url": url, "http_status": status, "status_text": status_text},
        )


class DecodeError(FetchError):
    """The response body is not valid for the expected envelope."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            code="decode_error",
            message=f"Invalid response body from {url}: {reason}",
            details={"url": url},
        )
