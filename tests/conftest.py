"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``app`` import so settings are
built for the testing environment. Network access is replaced by an
``httpx.MockTransport`` serving a small slice of the region API.
"""

import os

import httpx
import pytest

# Must happen before app.core.config is imported anywhere
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.adapters.http.fetcher import RetryingFetcher  # noqa: E402
from app.services.region_cache import RegionCache  # noqa: E402
from tests.helpers import BASE_URL, FakeClock, RegionApiStub, SleepRecorder  # noqa: E402


@pytest.fixture
def region_api() -> RegionApiStub:
    return RegionApiStub()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def http_client(region_api: RegionApiStub) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(region_api))


@pytest.fixture
def fetcher(http_client: httpx.AsyncClient, sleep_recorder: SleepRecorder) -> RetryingFetcher:
    return RetryingFetcher(http_client, sleep=sleep_recorder)


@pytest.fixture
def region_cache(fetcher: RetryingFetcher, clock: FakeClock) -> RegionCache:
    return RegionCache(fetcher, base_url=BASE_URL, clock=clock)
