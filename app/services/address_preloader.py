"""Prefill all four address levels for editing a saved address."""

from __future__ import annotations

import asyncio
import logging

from app.schemas.region import AddressChain, Region
from app.services.region_cache import RegionCache

logger = logging.getLogger(__name__)


async def _empty() -> list[Region]:
    return []


class ChainPreloader:
    """Fan out the four level lookups for a saved address and join them.

    Each level is fetched only when the code of its parent is known. The
    lookups run concurrently and the preloader waits for all of them; since
    ``RegionCache.get`` never raises, every branch settles to a list. Codes
    are not checked against each other.
    """

    def __init__(self, cache: RegionCache) -> None:
        self._cache = cache

    async def preload(
        self,
        province_code: str | None = None,
        regency_code: str | None = None,
        district_code: str | None = None,
    ) -> AddressChain:
        """Load province, regency, district and village options at once.

        Args:
            province_code: Selected province; enables the regency list.
            regency_code: Selected regency; enables the district list.
            district_code: Selected district; enables the village list.

        Returns:
            AddressChain with the four lists in hierarchy order.
        """
        provinces, regencies, districts, villages = await asyncio.gather(
            self._cache.fetch_provinces(),
            self._cache.fetch_regencies(province_code) if province_code else _empty(),
            self._cache.fetch_districts(regency_code) if regency_code else _empty(),
            self._cache.fetch_villages(district_code) if district_code else _empty(),
        )

        logger.debug(
            "address_chain.preloaded",
            extra={
                "provinces": len(provinces),
                "regencies": len(regencies),
                "districts": len(districts),
                "villages": len(villages),
            },
        )
        return AddressChain(
            provinces=provinces,
            regencies=regencies,
            districts=districts,
            villages=villages,
        )
