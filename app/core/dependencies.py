"""Service container and FastAPI dependency providers.

All process-wide state (the rate-limit window map, the region cache, the
shared HTTP client and the sweep task) lives on one explicitly owned
``ServiceContainer``. The application lifespan builds and starts it, routes
reach it through ``request.app.state``, and shutdown stops the sweep and
closes the client.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
from fastapi import Request

from app.adapters.http.fetcher import RetryingFetcher
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.config import Settings, settings as default_settings
from app.services.address_preloader import ChainPreloader
from app.services.region_cache import RegionCache
from app.utils.periodic import PeriodicTask

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    http_client: httpx.AsyncClient
    fetcher: RetryingFetcher
    region_cache: RegionCache
    preloader: ChainPreloader
    rate_limiter: InMemoryFixedWindowRateLimiter
    sweeper: PeriodicTask

    @classmethod
    def build(
        cls,
        cfg: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rate_limit_clock: Callable[[], float] | None = None,
    ) -> "ServiceContainer":
        """Wire every component from settings.

        Args:
            cfg: Settings to use; defaults to the global settings.
            transport: Optional httpx transport (tests pass a MockTransport).
            sleep: Backoff sleep used by the fetcher.
            rate_limit_clock: Optional millisecond clock for the limiter.

        Returns:
            A container whose sweep task is not yet started.
        """
        cfg = cfg or default_settings

        http_client = httpx.AsyncClient(
            timeout=cfg.region.timeout_seconds,
            transport=transport,
            follow_redirects=True,
        )
        fetcher = RetryingFetcher(
            http_client,
            retries=cfg.region.fetch_retries,
            base_delay_ms=cfg.region.backoff_base_delay_ms,
            sleep=sleep,
        )
        region_cache = RegionCache(
            fetcher,
            base_url=cfg.region.base_url,
            ttl_seconds=cfg.region.cache_ttl_seconds,
            single_flight=cfg.region.single_flight,
        )
        limiter_kwargs: dict[str, Any] = {}
        if rate_limit_clock is not None:
            limiter_kwargs["clock"] = rate_limit_clock
        rate_limiter = InMemoryFixedWindowRateLimiter(**limiter_kwargs)
        sweeper = PeriodicTask(
            rate_limiter.sweep_expired,
            cfg.rate_limit.sweep_interval_seconds,
            name="rate-limit-sweep",
        )

        return cls(
            settings=cfg,
            http_client=http_client,
            fetcher=fetcher,
            region_cache=region_cache,
            preloader=ChainPreloader(region_cache),
            rate_limiter=rate_limiter,
            sweeper=sweeper,
        )

    async def start(self) -> None:
        self.sweeper.start()

    async def aclose(self) -> None:
        """Stop the sweep task and release the HTTP client."""
        await self.sweeper.stop()
        await self.http_client.aclose()
        logger.info("services.closed")


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_region_cache(request: Request) -> RegionCache:
    return get_services(request).region_cache


def get_preloader(request: Request) -> ChainPreloader:
    return get_services(request).preloader


def get_rate_limiter(request: Request) -> InMemoryFixedWindowRateLimiter:
    return get_services(request).rate_limiter
