"""Rate limit check response schema."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.adapters.rate_limit.base import RateLimitResult


class RateLimitCheckResponse(BaseModel):
    action: str = Field(..., description="Throttled action that was checked")
    allowed: bool = Field(..., description="Whether the action may proceed")
    remaining: int = Field(..., ge=0, description="Requests left in the current window")
    reset_in_ms: int = Field(..., ge=0, description="Milliseconds until the window resets")
    limit: int = Field(..., ge=1, description="Max requests per window")

    @classmethod
    def from_result(cls, action: str, result: RateLimitResult) -> "RateLimitCheckResponse":
        return cls(
            action=action,
            allowed=result.allowed,
            remaining=result.remaining,
            reset_in_ms=result.reset_in_ms,
            limit=result.limit,
        )
