from __future__ import annotations

import time
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.logging import get_logger


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One structured `request` line per API call (health checks excluded)."""

    def __init__(self, app, *, exclude_paths: set[str] | None = None):
        super().__init__(app)
        self._exclude = frozenset(exclude_paths or ())
        self._log = get_logger("access")

    @staticmethod
    def _fields(request: Request, started: float) -> dict[str, Any]:
        user = getattr(request.state, "user", None)
        client = request.client
        return {
            "http_method": request.method.upper(),
            "path": request.url.path,
            "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
            "client_ip": client.host if client else None,
            "user_sub": getattr(user, "sub", None) or None,
        }

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self._exclude:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._log.exception("request_error", **self._fields(request, started))
            raise

        self._log.info("request", status_code=response.status_code, **self._fields(request, started))
        return response
