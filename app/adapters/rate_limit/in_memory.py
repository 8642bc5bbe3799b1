"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: checks and sweeps share one lock around the window map.
- Windows start at the first request for a key (not aligned to the clock).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import (
    DEFAULT_RATE_LIMIT,
    RATE_LIMITS,
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitResult,
)
from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

ANONYMOUS_IDENTIFIER = "anonymous"


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class _Window:
    count: int
    reset_at_ms: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Fixed-window request counter keyed by ``(identifier, action)``.

    A window opens on the first check for a key and lasts ``window_ms``. Within
    it, allowed checks increment the count until ``max_requests`` is reached;
    further checks are denied without touching the count. Once the clock
    reaches ``reset_at`` the window is treated as absent and the next check
    opens a fresh one.

    Expired windows linger in memory until ``sweep_expired`` runs. Sweeping
    only removes windows a check would already replace, so it never changes
    a decision.
    """

    def __init__(
        self,
        *,
        default_config: RateLimitConfig = DEFAULT_RATE_LIMIT,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            default_config: Limit used when ``check`` is called without one.
            clock: Time source returning milliseconds.
        """
        self._default_config = default_config
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: dict[tuple[str, str], _Window] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def check(
        self,
        identifier: str,
        action: str,
        config: RateLimitConfig | None = None,
    ) -> RateLimitResult:
        """Count one request for ``(identifier, action)`` if the limit allows it.

        Args:
            identifier: Caller identity; empty falls back to the anonymous id.
            action: Name of the throttled action.
            config: Limit to apply; defaults to the limiter's default config.

        Returns:
            RateLimitResult with the decision, remaining budget and reset delay.
        """
        cfg = config or self._default_config
        key = (identifier or ANONYMOUS_IDENTIFIER, action)

        with self._lock:
            now = self._clock()
            window = self._windows.get(key)

            if window is None or now >= window.reset_at_ms:
                window = _Window(count=1, reset_at_ms=now + cfg.window_ms)
                self._windows[key] = window
                return self._result(True, cfg.max_requests - 1, window, now, cfg)

            if window.count >= cfg.max_requests:
                return self._result(False, 0, window, now, cfg)

            window.count += 1
            return self._result(True, cfg.max_requests - window.count, window, now, cfg)

    def sweep_expired(self) -> int:
        """Remove every window whose reset time has passed.

        Returns:
            Number of windows removed.
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, w in self._windows.items() if w.reset_at_ms <= now]
            for key in expired:
                del self._windows[key]
            remaining = len(self._windows)

        if expired:
            logger.debug(
                "rate_limit.sweep",
                extra={"removed": len(expired), "windows": remaining},
            )
        return len(expired)

    def for_action(self, action: str) -> "ActionRateLimiter":
        """Bind the limiter to one action from the static limit table.

        Args:
            action: Action name, e.g. ``"login"``.

        Returns:
            ActionRateLimiter checking against that action's configured limit.

        Raises:
            ValidationAppError: If the action has no configured limit.
        """
        config = RATE_LIMITS.get(action)
        if config is None:
            raise ValidationAppError(
                code="unknown_rate_limit_action",
                message=f"No rate limit configured for action '{action}'",
                details={"action": action, "allowed_values": sorted(RATE_LIMITS)},
            )
        return ActionRateLimiter(self, action, config)

    @staticmethod
    def _result(
        allowed: bool,
        remaining: int,
        window: _Window,
        now: float,
        cfg: RateLimitConfig,
    ) -> RateLimitResult:
        return RateLimitResult(
            allowed=allowed,
            remaining=remaining,
            reset_in_ms=max(0, int(window.reset_at_ms - now)),
            limit=cfg.max_requests,
        )


class ActionRateLimiter:
    """A limiter pre-bound to one action and its configured limit."""

    def __init__(
        self,
        limiter: AbstractRateLimiter,
        action: str,
        config: RateLimitConfig,
    ) -> None:
        self.limiter = limiter
        self.action = action
        self.config = config

    def check(self, identifier: str = ANONYMOUS_IDENTIFIER) -> RateLimitResult:
        return self.limiter.check(identifier, self.action, self.config)
