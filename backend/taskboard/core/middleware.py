"""HTTP middleware for the taskboard API."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Awaitable, Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from taskboard.core.context import bound_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id, echo it in the response and log latency."""

    async def dispatch(  # type: ignore[override]
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        started = perf_counter()

        with bound_request_id(request_id):
            response = await call_next(request)
            elapsed_ms = (perf_counter() - started) * 1000
            logger.debug("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
