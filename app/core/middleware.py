"""Per-request correlation id middleware.

The id comes from the configured request-id header when the caller sends one,
otherwise a fresh UUID. It is bound to the logging context while the request
is handled, so error envelopes and log lines carry it, and echoed back under
the same header.

Usage:
    app.middleware("http")(build_request_id_middleware("X-Request-ID"))
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response

from app.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


def build_request_id_middleware(
    header_name: str,
) -> Callable[[Request, CallNext], Awaitable[Response]]:
    """Create the middleware for a given correlation header.

    Args:
        header_name: Header read from the request and set on the response.

    Returns:
        An ``http`` middleware function for ``app.middleware``.
    """

    async def request_id_middleware(request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get(header_name) or str(uuid.uuid4())
        set_request_id(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "http.request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
        finally:
            clear_request_id()

        response.headers[header_name] = request_id
        return response

    return request_id_middleware
