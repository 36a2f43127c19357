"""
Client Records Backend — Access Log Middleware
================================================

One line per request on the "clientrecords.access" logger:

    GET /api/clients/search 200 12.4ms [3f9c0a1b7e2d] 10.0.0.7

Severity follows the outcome: 5xx ERROR, 401/406 and other 4xx WARNING,
everything else INFO. Photo downloads and health probes are logged at
DEBUG only.

Query strings and bodies are left out of the line: searches carry names
and phone numbers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from clientrecords.middleware.request_id import request_id_var

logger = logging.getLogger("clientrecords.access")

DEBUG_ONLY_PREFIXES = ("/health", "/uploads/")


def _level_for(path: str, status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    if path.startswith(DEBUG_ONLY_PREFIXES):
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        path = request.url.path
        level = _level_for(path, response.status_code)
        if logger.isEnabledFor(level):
            peer = request.client.host if request.client else "-"
            logger.log(
                level,
                "%s %s %d %.1fms [%s] %s",
                request.method,
                path,
                response.status_code,
                elapsed_ms,
                request_id_var.get(""),
                peer,
            )
        return response
