from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.dependencies import ServiceContainer, get_rate_limiter, get_services
from app.core.rate_limit import evaluate_rate_limit, rate_limit_headers
from app.schemas.rate_limit import RateLimitCheckResponse

router = APIRouter(prefix="/rate-limits", tags=["Rate limits"])


@router.post(
    "/{action}/check",
    response_model=RateLimitCheckResponse,
    responses={status.HTTP_429_TOO_MANY_REQUESTS: {"model": RateLimitCheckResponse}},
)
async def check_action(
    action: str,
    request: Request,
    response: Response,
    limiter: InMemoryFixedWindowRateLimiter = Depends(get_rate_limiter),
    services: ServiceContainer = Depends(get_services),
) -> RateLimitCheckResponse | JSONResponse:
    """Count one attempt at ``action`` for the calling session.

    The caller is identified by the configured identifier header (anonymous
    when absent). Allowed attempts return 200; once the window's budget is
    spent the same body comes back with 429 and a Retry-After header so the
    client can show a cooldown.
    """
    cfg = services.settings.rate_limit
    result = evaluate_rate_limit(request, action, limiter, cfg)
    body = RateLimitCheckResponse.from_result(action, result)
    headers = rate_limit_headers(result) if cfg.include_headers else {}

    if not result.allowed:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=body.model_dump(),
            headers=headers or None,
        )

    response.headers.update(headers)
    return body
