"""Rate limiting glue between HTTP requests and the limiter.

Resolves the caller identifier from the request, applies the action's
configured limit and logs the decision without exposing the identifier.
"""

from __future__ import annotations

import logging

from fastapi import Request

from app.adapters.rate_limit.base import RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.config import RateLimitSettings
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def resolve_identifier(request: Request, cfg: RateLimitSettings) -> str:
    """Return the caller identifier, or the shared anonymous one.

    Args:
        request: Incoming request.
        cfg: Rate limit settings naming the identifier header.

    Returns:
        Stripped header value, or ``cfg.anonymous_identifier`` when absent.
    """

    value = request.headers.get(cfg.identifier_header, "").strip()
    return value or cfg.anonymous_identifier


def evaluate_rate_limit(
    request: Request,
    action: str,
    limiter: InMemoryFixedWindowRateLimiter,
    cfg: RateLimitSettings,
) -> RateLimitResult:
    """Check the action's limit for the requesting caller.

    Args:
        request: Incoming request.
        action: Throttled action name from the limit table.
        limiter: Process-wide limiter.
        cfg: Rate limit settings.

    Returns:
        The limiter decision; always allowed when limiting is disabled.

    Raises:
        ValidationAppError: If the action has no configured limit.
    """

    bound = limiter.for_action(action)
    if not cfg.enabled:
        return RateLimitResult(
            allowed=True,
            remaining=bound.config.max_requests,
            reset_in_ms=0,
            limit=bound.config.max_requests,
        )

    identifier = resolve_identifier(request, cfg)
    result = bound.check(identifier)

    log_extra = {
        "action": action,
        "identifier_hash": hash_identifier(identifier),
        "limit": result.limit,
        "remaining": result.remaining,
        "reset_in_ms": result.reset_in_ms,
    }
    if result.allowed:
        logger.info("rate_limit.allowed", extra=log_extra)
    else:
        logger.warning("rate_limit.denied", extra=log_extra)
    return result


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Standard throttling headers for a decision."""

    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset-Ms": str(result.reset_in_ms),
    }
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers
