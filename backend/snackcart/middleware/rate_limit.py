"""
SnackCart Backend — Rate Limiting Middleware
=============================================

What:  Per-IP sliding window limits with two budgets: catalog reads and
       catalog writes (POST, PUT, DELETE). Writes store photos on disk, so
       their budget is smaller.
How:   Each (ip, kind) key keeps a deque of request timestamps inside the
       window; a request arriving when the deque is full gets a 429 with
       Retry-After.

Not limited: /health, the API docs, and photo fetches under the uploads prefix
(a single grid render requests one photo per snack).

Single-process only: counters live in memory. A multi-worker deployment
needs a shared store (e.g. Redis) instead.
"""

import logging
import time
from collections import deque
from typing import Deque, Dict, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from snackcart.config import settings
from snackcart.exceptions import RateLimitExceededError
from snackcart.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Configuration (from settings):
        rate_limit_requests:       reads per window per IP
        rate_limit_write_requests: writes per window per IP
        rate_limit_window:         window length in seconds
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._hits: Dict[Tuple[str, str], Deque[float]] = {}
        self._since_sweep = 0

    def _is_excluded(self, path: str) -> bool:
        return path in self.EXCLUDED_PATHS or path.startswith(f"{settings.uploads_url_path}/")

    @staticmethod
    def _budget(kind: str) -> int:
        return settings.rate_limit_write_requests if kind == "write" else settings.rate_limit_requests

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self._is_excluded(request.url.path):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        kind = "write" if request.method in _WRITE_METHODS else "read"
        key = (client_ip, kind)

        now = time.time()
        window_start = now - settings.rate_limit_window
        hits = self._hits.setdefault(key, deque())
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= self._budget(kind):
            retry_after = int(hits[0] + settings.rate_limit_window - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after, context={"kind": kind})
            logger.warning(
                "Rate limit exceeded for IP %s: %d %s requests in %ds window",
                client_ip,
                len(hits),
                kind,
                settings.rate_limit_window,
            )
            # Runs outside the app's exception handlers, so respond directly
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        hits.append(now)
        self._since_sweep += 1
        if self._since_sweep >= 1000:
            self._sweep(window_start)

        return await call_next(request)

    def _sweep(self, window_start: float) -> None:
        """Forgets keys whose newest hit fell out of the window."""
        self._since_sweep = 0
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._hits[key]
        if stale:
            logger.debug("Rate limiter dropped %d idle keys", len(stale))
