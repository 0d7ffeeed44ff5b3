"""HTTP request/response logging middleware.

Every request gets a request id (taken from `X-Request-ID` when the client
sends one) that is echoed back and attached to the access log line, so
audit and error logs of one call can be correlated.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from admissions.core.logging import env_bool

REQUEST_ID_HEADER = "X-Request-ID"


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and len(incoming) <= 64:
        return incoming
    return uuid.uuid4().hex


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: FastAPI) -> None:
        super().__init__(app)
        self.logger = logging.getLogger("admissions.request")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id
        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            elapsed = round((time.perf_counter() - start) * 1000.0, 2)
            status_code = response.status_code if response is not None else None
            path = request.url.path
            if request.url.query:
                path = f"{path}?{request.url.query}"

            extra: dict[str, Any] = {
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query": request.url.query,
                "status_code": status_code,
                "duration_ms": elapsed,
                "client_ip": request.client.host if request.client else None,
                "user_agent": request.headers.get("user-agent"),
            }

            # 503 means the store is briefly unavailable and the client retries
            if status_code == 503:
                level = logging.WARNING
            elif status_code is None or status_code >= 500:
                level = logging.ERROR
            else:
                level = logging.INFO
            self.logger.log(
                level,
                "%s %s -> %s (%.2fms)",
                request.method,
                path,
                status_code,
                elapsed,
                extra=extra,
            )


def add_request_logging_middleware(app: FastAPI) -> None:
    """Attach request logging middleware unless LOG_REQUESTS is off."""
    if env_bool("LOG_REQUESTS", default=True):
        app.add_middleware(RequestLoggingMiddleware)
