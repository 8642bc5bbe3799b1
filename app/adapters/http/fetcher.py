"""HTTP GET with bounded retries and exponential backoff.

Only read-only JSON endpoints go through this adapter, so every failure is
safe to retry: transport errors, non-2xx statuses and undecodable bodies are
treated alike. After the last attempt the most recent error is raised;
earlier ones are discarded.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from pydantic import ValidationError

from app.core.errors import DecodeError, FetchError, HttpError, NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 2
DEFAULT_BASE_DELAY_MS = 500


class RetryingFetcher:
    """Fetch JSON documents, retrying failed attempts with backoff.

    Attempt ``i`` (zero-based) that fails is followed by a sleep of
    ``base_delay_ms * 2**i`` milliseconds, except after the final attempt.
    With the defaults that is 3 attempts with 500 ms and 1000 ms pauses.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        retries: int = DEFAULT_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: Shared async HTTP client (owned by the caller).
            retries: Extra attempts after the first failure.
            base_delay_ms: Backoff delay before the second attempt.
            sleep: Coroutine used for backoff pauses, in seconds.
        """
        if retries < 0:
            raise ValueError("retries must be >= 0")
        if base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")

        self._client = client
        self.retries = retries
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep

    def backoff_delay_ms(self, attempt: int) -> int:
        return self.base_delay_ms * 2**attempt

    async def fetch(self, url: str, *, parse: Callable[[Any], T] | None = None) -> Any:
        """GET ``url`` and return its decoded JSON body.

        Args:
            url: Absolute URL (or one relative to the client's base_url).
            parse: Optional validator applied to the decoded body inside the
                attempt, so a malformed envelope is retried like any failure.

        Returns:
            The decoded JSON, or ``parse(body)`` when a parser is given.

        Raises:
            FetchError: The last attempt's error once all attempts fail.
        """
        attempts = self.retries + 1

        for attempt in range(self.retries):
            try:
                return await self._attempt(url, parse)
            except FetchError as exc:
                self._log_failure(url, attempt, attempts, exc)
            await self._sleep(self.backoff_delay_ms(attempt) / 1000)

        try:
            return await self._attempt(url, parse)
        except FetchError as exc:
            self._log_failure(url, self.retries, attempts, exc)
            raise

    def _log_failure(self, url: str, attempt: int, attempts: int, error: FetchError) -> None:
        logger.warning(
            "fetch.attempt_failed",
            extra={
                "url": url,
                "attempt": attempt + 1,
                "max_attempts": attempts,
                "error_code": error.code,
                "error_message": error.message,
                "will_retry": attempt + 1 < attempts,
            },
        )

    async def _attempt(self, url: str, parse: Callable[[Any], T] | None) -> Any:
        try:
            response = await self._client.get(url, headers={"Accept": "application/json"})
        except httpx.DecodingError as exc:
            # Body could not be decompressed with its declared Content-Encoding
            raise DecodeError(url, str(exc) or type(exc).__name__) from exc
        except httpx.RequestError as exc:
            raise NetworkError(url, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise HttpError(url, response.status_code, response.reason_phrase)

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError(url, str(exc)) from exc

        if parse is None:
            return body
        try:
            return parse(body)
        except (ValidationError, TypeError, ValueError) as exc:
            raise DecodeError(url, str(exc)) from exc
