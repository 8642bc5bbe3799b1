"""Tests for the TTL region cache."""

import asyncio
import logging

import httpx
import pytest

from app.adapters.http.fetcher import RetryingFetcher
from app.core.errors import DecodeError, HttpError, NetworkError
from app.schemas.region import Region, RegionLevel
from app.services.region_cache import (
    RegionCache,
    build_cache_key,
    build_region_path,
)

from tests.helpers import BASE_URL, PROVINCES, REGENCIES_11


@pytest.mark.asyncio
async def test_get_provinces_returns_regions(region_cache, region_api):
    regions = await region_cache.get(RegionLevel.PROVINCE)

    assert regions == [Region(**p) for p in PROVINCES]
    assert region_api.paths == ["/api/provinces.json"]


@pytest.mark.asyncio
async def test_second_get_within_ttl_is_served_from_cache(region_cache, region_api):
    first = await region_cache.get(RegionLevel.REGENCY, "11")
    second = await region_cache.get(RegionLevel.REGENCY, "11")

    assert first == second == [Region(**r) for r in REGENCIES_11]
    assert len(region_api.requests) == 1

    stats = region_cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["fetches"] == 1


@pytest.mark.asyncio
async def test_entry_still_valid_just_before_ttl(region_cache, region_api, clock):
    await region_cache.get(RegionLevel.PROVINCE)
    clock.advance(30 * 60 - 0.001)

    result = await region_cache.lookup(RegionLevel.PROVINCE)

    assert result.from_cache is True
    assert len(region_api.requests) == 1


@pytest.mark.asyncio
async def test_expired_entry_triggers_exactly_one_refetch(region_cache, region_api, clock):
    await region_cache.get(RegionLevel.PROVINCE)
    first_stored_at = region_cache.entry(RegionLevel.PROVINCE).stored_at

    clock.advance(30 * 60)
    await region_cache.get(RegionLevel.PROVINCE)
    await region_cache.get(RegionLevel.PROVINCE)

    assert len(region_api.requests) == 2
    assert region_cache.entry(RegionLevel.PROVINCE).stored_at == first_stored_at + 30 * 60


@pytest.mark.asyncio
@pytest.mark.parametrize("parent_code", [None, ""])
@pytest.mark.parametrize(
    "level", [RegionLevel.REGENCY, RegionLevel.DISTRICT, RegionLevel.VILLAGE]
)
async def test_missing_parent_code_short_circuits(region_cache, region_api, level, parent_code):
    result = await region_cache.lookup(level, parent_code)

    assert result.regions == ()
    assert result.ok is True
    assert region_api.requests == []
    assert region_cache.stats()["misses"] == 0


@pytest.mark.asyncio
async def test_province_ignores_parent_code(region_cache, region_api):
    await region_cache.get(RegionLevel.PROVINCE)
    await region_cache.get(RegionLevel.PROVINCE, "99")

    assert len(region_api.requests) == 1


@pytest.mark.asyncio
async def test_failure_degrades_to_empty_list_and_logs(region_cache, region_api, caplog):
    region_api.fail_next(503, 503, 503)

    with caplog.at_level(logging.ERROR, logger="app.services.region_cache"):
        regions = await region_cache.get(RegionLevel.REGENCY, "11")

    assert regions == []
    assert any(r.getMessage() == "region_cache.fetch_failed" for r in caplog.records)
    assert region_cache.entry(RegionLevel.REGENCY, "11") is None
    assert region_cache.stats()["failures"] == 1


@pytest.mark.asyncio
async def test_lookup_exposes_typed_error(region_cache, region_api):
    region_api.fail_next(httpx.ConnectError("down"), 500, 404)

    result = await region_cache.lookup(RegionLevel.PROVINCE)

    assert result.ok is False
    assert isinstance(result.error, HttpError)
    assert result.error.status == 404
    assert result.regions == ()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc_type", "error_type"),
    [
        (httpx.ConnectError, NetworkError),
        (httpx.ReadTimeout, NetworkError),
        (httpx.RemoteProtocolError, NetworkError),
        (httpx.ProxyError, NetworkError),
        (httpx.UnsupportedProtocol, NetworkError),
        (httpx.TooManyRedirects, NetworkError),
        (httpx.DecodingError, DecodeError),
    ],
)
async def test_any_client_request_error_degrades_to_empty_list(
    region_cache, region_api, exc_type, error_type
):
    region_api.fail_next(*(exc_type("boom") for _ in range(3)))
    assert await region_cache.get(RegionLevel.PROVINCE) == []

    region_api.fail_next(*(exc_type("boom") for _ in range(3)))
    result = await region_cache.lookup(RegionLevel.PROVINCE)

    assert isinstance(result.error, error_type)
    assert len(region_api.requests) == 6


@pytest.mark.asyncio
async def test_undecompressable_body_degrades_to_empty_list(region_cache, region_api):
    region_api.fail_next(
        *(
            httpx.Response(
                200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip")
            )
            for _ in range(3)
        )
    )

    assert await region_cache.get(RegionLevel.PROVINCE) == []
    assert region_cache.stats()["failures"] == 1


@pytest.mark.asyncio
async def test_redirect_loop_degrades_to_empty_list(clock, sleep_recorder):
    def redirect_to_self(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": str(request.url)})

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(redirect_to_self), follow_redirects=True
    ) as client:
        cache = RegionCache(
            RetryingFetcher(client, sleep=sleep_recorder), base_url=BASE_URL, clock=clock
        )

        result = await cache.lookup(RegionLevel.PROVINCE)
        regions = await cache.get(RegionLevel.PROVINCE)

    assert regions == []
    assert isinstance(result.error, NetworkError)


@pytest.mark.asyncio
async def test_failure_is_not_cached(region_cache, region_api):
    region_api.fail_next(500, 500, 500)
    assert await region_cache.get(RegionLevel.PROVINCE) == []

    regions = await region_cache.get(RegionLevel.PROVINCE)

    assert [r.code for r in regions] == ["11", "31"]
    assert len(region_api.requests) == 4


@pytest.mark.asyncio
async def test_missing_data_field_defaults_to_empty(region_cache, region_api):
    region_api.routes["/api/villages/999.json"] = {"meta": {"administrative_area_level": 4}}
    region_api.routes["/api/villages/998.json"] = {"data": None}

    assert await region_cache.get(RegionLevel.VILLAGE, "999") == []
    assert await region_cache.get(RegionLevel.VILLAGE, "998") == []
    assert region_cache.entry(RegionLevel.VILLAGE, "999").data == ()


@pytest.mark.asyncio
async def test_clear_forces_refetch(region_cache, region_api):
    await region_cache.get(RegionLevel.PROVINCE)
    region_cache.clear()

    await region_cache.get(RegionLevel.PROVINCE)

    assert len(region_api.requests) == 2
    assert region_cache.stats()["entries"] == 1


@pytest.mark.asyncio
async def test_keys_are_distinct_per_level_and_parent(region_cache, region_api):
    await region_cache.get(RegionLevel.REGENCY, "11")
    await region_cache.get(RegionLevel.REGENCY, "31")
    await region_cache.get(RegionLevel.DISTRICT, "11")

    assert region_api.paths == [
        "/api/regencies/11.json",
        "/api/regencies/31.json",
        "/api/districts/11.json",
    ]


@pytest.mark.asyncio
async def test_concurrent_misses_each_fetch_without_single_flight(region_cache, region_api):
    results = await asyncio.gather(
        region_cache.get(RegionLevel.PROVINCE),
        region_cache.get(RegionLevel.PROVINCE),
    )

    assert results[0] == results[1]
    assert len(region_api.requests) == 2


@pytest.mark.asyncio
async def test_single_flight_shares_one_fetch(fetcher, region_api, clock):
    cache = RegionCache(fetcher, base_url=BASE_URL, single_flight=True, clock=clock)

    results = await asyncio.gather(*(cache.get(RegionLevel.PROVINCE) for _ in range(5)))

    assert all(r == results[0] for r in results)
    assert len(results[0]) == 2
    assert len(region_api.requests) == 1


@pytest.mark.asyncio
async def test_convenience_fetchers_hit_level_endpoints(region_cache, region_api):
    await region_cache.fetch_provinces()
    await region_cache.fetch_regencies("11")
    await region_cache.fetch_districts("1101")
    villages = await region_cache.fetch_villages("110101")

    assert [v.name for v in villages] == ["Latiung", "Labuhan Bajau"]
    assert region_api.paths == [
        "/api/provinces.json",
        "/api/regencies/11.json",
        "/api/districts/1101.json",
        "/api/villages/110101.json",
    ]


def test_cache_key_and_paths():
    assert build_cache_key(RegionLevel.PROVINCE, "11") == (RegionLevel.PROVINCE, None)
    assert build_cache_key(RegionLevel.DISTRICT, "1101") == (RegionLevel.DISTRICT, "1101")
    assert build_region_path(RegionLevel.PROVINCE) == "provinces.json"
    assert build_region_path(RegionLevel.VILLAGE, "110101") == "villages/110101.json"


def test_invalid_ttl(fetcher):
    with pytest.raises(ValueError):
        RegionCache(fetcher, ttl_seconds=0)
