"""Test doubles for the region API, time and backoff sleeps."""

import asyncio
from typing import Any

import httpx

BASE_URL = "https://wilayah.id/api"

PROVINCES = [
    {"code": "11", "name": "Aceh"},
    {"code": "31", "name": "DKI Jakarta"},
]
REGENCIES_11 = [
    {"code": "1101", "name": "Kabupaten Simeulue"},
    {"code": "1102", "name": "Kabupaten Aceh Singkil"},
]
DISTRICTS_1101 = [
    {"code": "110101", "name": "Teupah Selatan"},
]
VILLAGES_110101 = [
    {"code": "1101012001", "name": "Latiung"},
    {"code": "1101012002", "name": "Labuhan Bajau"},
]


def default_routes() -> dict[str, Any]:
    return {
        "/api/provinces.json": {
            "data": PROVINCES,
            "meta": {"administrative_area_level": 1, "updated_at": "2025-07-04"},
        },
        "/api/regencies/11.json": {"data": REGENCIES_11},
        "/api/districts/1101.json": {"data": DISTRICTS_1101},
        "/api/villages/110101.json": {"data": VILLAGES_110101},
    }


class RegionApiStub:
    """Async handler for ``httpx.MockTransport`` imitating the region API.

    Queued failures are consumed one per request before normal routing: an
    int becomes a response with that status, an exception is raised as a
    transport error, bytes are returned as a 200 with that raw body and an
    ``httpx.Response`` is returned as is.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes = routes if routes is not None else default_routes()
        self.failures: list[Any] = []
        self.requests: list[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def fail_next(self, *failures: Any) -> None:
        self.failures.extend(failures)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Yield so concurrent lookups interleave like real network calls
            await asyncio.sleep(0)

            if self.failures:
                failure = self.failures.pop(0)
                if isinstance(failure, Exception):
                    raise failure
                if isinstance(failure, httpx.Response):
                    return failure
                if isinstance(failure, bytes):
                    return httpx.Response(200, content=failure)
                return httpx.Response(failure)

            body = self.routes.get(request.url.path)
            if body is None:
                return httpx.Response(404)
            return httpx.Response(200, json=body)
        finally:
            self.in_flight -= 1


class FakeClock:
    """Deterministic clock; ``advance`` moves time forward."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, amount: float) -> None:
        self.current += amount


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


