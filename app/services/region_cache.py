"""TTL cache over the four-level administrative region hierarchy.

Lookups are keyed by ``(level, parent_code)``. A hit is served from memory;
a miss or an expired entry triggers one fetch through ``RetryingFetcher`` and
stores a fresh, immutable entry. Fetch failures never reach callers of
``get``: they see an empty list, while ``lookup`` exposes the typed outcome
for callers (and tests) that need to know why.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.http.fetcher import RetryingFetcher
from app.core.errors import FetchError
from app.schemas.region import Region, RegionEnvelope, RegionLevel

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60

CacheKey = tuple[RegionLevel, str | None]

_ENDPOINTS: dict[RegionLevel, str] = {
    RegionLevel.PROVINCE: "provinces.json",
    RegionLevel.REGENCY: "regencies/{code}.json",
    RegionLevel.DISTRICT: "districts/{code}.json",
    RegionLevel.VILLAGE: "villages/{code}.json",
}


@dataclass(frozen=True)
class CacheEntry:
    data: tuple[Region, ...]
    stored_at: float


@dataclass(frozen=True)
class RegionLookup:
    """Outcome of a lookup before errors are collapsed to an empty list.

    Attributes:
        regions: Regions found (empty on failure or missing parent code).
        error: The fetch error, if the network path failed.
        from_cache: True when served from a valid cache entry.
    """

    regions: tuple[Region, ...] = ()
    error: FetchError | None = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def build_cache_key(level: RegionLevel, parent_code: str | None = None) -> CacheKey:
    """Derive the cache key for a level lookup.

    Provinces sit at the top of the hierarchy, so their key never carries a
    parent code.
    """
    return (level, parent_code if level.requires_parent else None)


def build_region_path(level: RegionLevel, parent_code: str | None = None) -> str:
    """Relative endpoint path for a level, e.g. ``regencies/11.json``."""
    return _ENDPOINTS[level].format(code=parent_code)


class RegionCache:
    """Cache of region lists with a fixed time-to-live.

    Entries are replaced wholesale on refetch. The store lock guards only
    dictionary access and is never held across an ``await``. Without
    ``single_flight`` two concurrent misses for the same key each fetch; with
    it, later callers await the first caller's in-flight fetch.
    """

    def __init__(
        self,
        fetcher: RetryingFetcher,
        *,
        base_url: str = "",
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        single_flight: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            fetcher: Retrying fetcher used on misses.
            base_url: Prefix for endpoint paths; empty when the HTTP client
                already carries a base URL.
            ttl_seconds: Entry lifetime.
            single_flight: Coalesce concurrent misses for the same key.
            clock: Time source in seconds.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")

        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")
        self._ttl = ttl_seconds
        self._single_flight = single_flight
        self._clock = clock
        self._lock = threading.RLock()
        self._store: dict[CacheKey, CacheEntry] = {}
        self._in_flight: dict[CacheKey, asyncio.Task[RegionLookup]] = {}
        self._hits = 0
        self._misses = 0
        self._fetches = 0
        self._failures = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"RegionCache(ttl_seconds={self._ttl}, size={len(self._store)}, "
            f"hits={self._hits}, misses={self._misses}, fetches={self._fetches})"
        )

    def url_for(self, level: RegionLevel, parent_code: str | None = None) -> str:
        path = build_region_path(level, parent_code)
        return f"{self._base_url}/{path}" if self._base_url else path

    async def get(self, level: RegionLevel, parent_code: str | None = None) -> list[Region]:
        """Return the regions under ``parent_code`` at ``level``; never raises.

        Args:
            level: Hierarchy level to list.
            parent_code: Code of the parent unit; ignored for provinces.

        Returns:
            Ordered region list, empty when the parent code is missing or the
            fetch failed.
        """
        level = RegionLevel(level)
        result = await self.lookup(level, parent_code)
        if result.error is not None:
            logger.error(
                "region_cache.fetch_failed",
                extra={
                    "region_level": level.value,
                    "parent_code": parent_code,
                    "error_code": result.error.code,
                    "error_message": result.error.message,
                },
            )
        return list(result.regions)

    async def lookup(self, level: RegionLevel, parent_code: str | None = None) -> RegionLookup:
        """Resolve a level lookup and report how it was satisfied.

        Args:
            level: Hierarchy level to list.
            parent_code: Code of the parent unit; ignored for provinces.

        Returns:
            RegionLookup carrying regions or the fetch error.
        """
        level = RegionLevel(level)
        if level.requires_parent and not parent_code:
            return RegionLookup()

        key = build_cache_key(level, parent_code)
        cached = self._get_valid(key)
        if cached is not None:
            return RegionLookup(regions=cached.data, from_cache=True)

        if not self._single_flight:
            return await self._fetch_and_store(key)

        with self._lock:
            task = self._in_flight.get(key)
            if task is None:
                task = asyncio.get_running_loop().create_task(self._fetch_and_store(key))
                self._in_flight[key] = task
                task.add_done_callback(lambda _t, k=key: self._in_flight.pop(k, None))
        return await asyncio.shield(task)

    async def fetch_provinces(self) -> list[Region]:
        return await self.get(RegionLevel.PROVINCE)

    async def fetch_regencies(self, province_code: str) -> list[Region]:
        return await self.get(RegionLevel.REGENCY, province_code)

    async def fetch_districts(self, regency_code: str) -> list[Region]:
        return await self.get(RegionLevel.DISTRICT, regency_code)

    async def fetch_villages(self, district_code: str) -> list[Region]:
        return await self.get(RegionLevel.VILLAGE, district_code)

    def clear(self) -> None:
        """Remove every cached entry."""
        with self._lock:
            self._store.clear()
        logger.info("region_cache.cleared")

    def entry(self, level: RegionLevel, parent_code: str | None = None) -> CacheEntry | None:
        """Return the stored entry for a key, expired or not."""
        with self._lock:
            return self._store.get(build_cache_key(RegionLevel(level), parent_code))

    def stats(self) -> dict[str, int | float]:
        with self._lock:
            return {
                "ttl_seconds": self._ttl,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "fetches": self._fetches,
                "failures": self._failures,
            }

    def _get_valid(self, key: CacheKey) -> CacheEntry | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is not None and self._clock() - entry.stored_at < self._ttl:
                self._hits += 1
                logger.debug("region_cache.hit", extra={"region_level": key[0].value, "parent_code": key[1]})
                return entry
            self._misses += 1
            logger.debug(
                "region_cache.miss",
                extra={
                    "region_level": key[0].value,
                    "parent_code": key[1],
                    "reason": "not_found" if entry is None else "expired",
                },
            )
            return None

    async def _fetch_and_store(self, key: CacheKey) -> RegionLookup:
        level, parent_code = key
        url = self.url_for(level, parent_code)
        with self._lock:
            self._fetches += 1
        try:
            envelope: RegionEnvelope = await self._fetcher.fetch(
                url, parse=RegionEnvelope.model_validate
            )
        except FetchError as exc:
            with self._lock:
                self._failures += 1
            return RegionLookup(error=exc)

        entry = CacheEntry(data=tuple(envelope.regions), stored_at=self._clock())
        with self._lock:
            self._store[key] = entry
        logger.debug(
            "region_cache.stored",
            extra={"region_level": level.value, "parent_code": parent_code, "count": len(entry.data)},
        )
        return RegionLookup(regions=entry.data)
