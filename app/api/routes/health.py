from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness probe.

    Reports "ok" as long as the process serves requests. Once the service
    container is up, also reports whether the rate-limit sweep is running and
    how many region lists are cached.
    """

    payload: dict = {"status": "ok"}
    services = getattr(request.app.state, "services", None)
    if services is not None:
        payload["rate_limit_sweep"] = services.sweeper.running
        payload["region_cache_entries"] = services.region_cache.stats()["entries"]
    return payload
