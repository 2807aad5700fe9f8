"""
SnackCart Backend — Access Logging Middleware
==============================================

What:  One access log line per request on the `snackcart.access` logger.

Levels:
    5xx                    → ERROR
    4xx                    → WARNING
    photo fetches (2xx)    → DEBUG, a grid render requests one per snack
    catalog writes (2xx)   → INFO, with the request body size
    everything else        → INFO

Request bodies (photos, form fields) are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from snackcart.config import settings
from snackcart.middleware.request_id import request_id_var

logger = logging.getLogger("snackcart.access")

_WRITE_METHODS = {"POST", "PUT", "DELETE"}


def _level_for(method: str, path: str, status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    if method == "GET" and path.startswith(f"{settings.uploads_url_path}/"):
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        # Probed every few seconds by orchestrators
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        method = request.method
        status = response.status_code
        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"

        message = "%s %s %d %.1fms [%s] from %s"
        args = [method, path, status, duration_ms, rid, client_ip]
        if method in _WRITE_METHODS:
            message += " body=%sB"
            args.append(request.headers.get("content-length", "?"))

        logger.log(
            _level_for(method, path, status),
            message,
            *args,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
