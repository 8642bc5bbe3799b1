"""Rate limiter interfaces and the per-action limit table.

Callers depend on ``AbstractRateLimiter`` rather than the in-memory
implementation so the storage can move to a shared backend without touching
the HTTP layer.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class RateLimitConfig:
    """Limit applied to one action.

    Attributes:
        max_requests: Requests allowed per window.
        window_ms: Window length in milliseconds.
    """

    max_requests: int
    window_ms: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")


DEFAULT_RATE_LIMIT = RateLimitConfig(max_requests=10, window_ms=60_000)

RATE_LIMITS: Mapping[str, RateLimitConfig] = {
    "login": RateLimitConfig(max_requests=5, window_ms=300_000),
    "register": RateLimitConfig(max_requests=3, window_ms=600_000),
    "checkout": RateLimitConfig(max_requests=10, window_ms=60_000),
    "addToCart": RateLimitConfig(max_requests=30, window_ms=60_000),
    "search": RateLimitConfig(max_requests=20, window_ms=60_000),
    "review": RateLimitConfig(max_requests=5, window_ms=300_000),
    "voucherApply": RateLimitConfig(max_requests=10, window_ms=60_000),
}


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single rate-limit check.

    Attributes:
        allowed: Whether the action may proceed.
        remaining: Requests left in the current window (0 when denied).
        reset_in_ms: Milliseconds until the current window resets, never negative.
        limit: Max requests per window for the action.
    """

    allowed: bool
    remaining: int
    reset_in_ms: int
    limit: int

    @property
    def retry_after_seconds(self) -> int | None:
        """Whole seconds to wait before retrying, only set when denied."""
        if self.allowed:
            return None
        return max(0, math.ceil(self.reset_in_ms / 1000))


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(
        self,
        identifier: str,
        action: str,
        config: RateLimitConfig | None = None,
    ) -> RateLimitResult:
        """Count one request for ``(identifier, action)`` if the limit allows it.

        Args:
            identifier: Caller identity (user or session id).
            action: Name of the throttled action.
            config: Limit to apply; implementations pick a default when omitted.

        Returns:
            RateLimitResult describing whether the request was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep_expired(self) -> int:
        """Drop state for windows that have already expired.

        Returns:
            Number of windows removed.
        """
        raise NotImplementedError
