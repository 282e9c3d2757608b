"""Access logging for the link registry."""

import time
import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

QUIET_PATHS = {"/health", "/api/health"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and adds an ``X-Response-Time-Ms`` header.

    Server errors log at ERROR, client errors at WARNING, health probes at
    DEBUG and everything else at INFO.
    """

    def __init__(self, app, logger: logging.Logger = None):
        super().__init__(app)
        self.logger = logger or logging.getLogger("web_app.access")

    def _level(self, path: str, status_code: int) -> int:
        if status_code >= 500:
            return logging.ERROR
        if status_code >= 400:
            return logging.WARNING
        if path in QUIET_PATHS:
            return logging.DEBUG
        return logging.INFO

    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
        client = request.client.host if request.client else "-"
        self.logger.log(
            self._level(request.url.path, response.status_code),
            f"{client} {request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.2f}ms)",
        )
        return response
