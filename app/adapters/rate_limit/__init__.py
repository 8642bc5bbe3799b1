"""Rate limiting adapters.

Start with a process-local limiter; the abstract interface leaves room for a
shared store later without changing the API layer.
"""

from app.adapters.rate_limit.base import (
    DEFAULT_RATE_LIMIT,
    RATE_LIMITS,
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitResult,
)
from app.adapters.rate_limit.in_memory import (
    ActionRateLimiter,
    InMemoryFixedWindowRateLimiter,
)

__all__ = [
    "AbstractRateLimiter",
    "ActionRateLimiter",
    "DEFAULT_RATE_LIMIT",
    "InMemoryFixedWindowRateLimiter",
    "RATE_LIMITS",
    "RateLimitConfig",
    "RateLimitResult",
]
