"""HTTP middleware for request correlation and access logging."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.context import request_id_ctx_var, user_id_ctx_var

REQUEST_ID_HEADER = "X-Request-Id"
PROCESS_TIME_HEADER = "X-Process-Time-Ms"

logger = logging.getLogger("app.access")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id to request.state, the log context and the response headers."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:  # type: ignore[override]
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        rid_token = request_id_ctx_var.set(request_id)
        uid_token = user_id_ctx_var.set(request.query_params.get("user_id"))
        start = perf_counter()

        try:
            response = await call_next(request)
        finally:
            user_id_ctx_var.reset(uid_token)
            request_id_ctx_var.reset(rid_token)

        elapsed_ms = (perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[PROCESS_TIME_HEADER] = f"{elapsed_ms:.1f}"
        logger.info(
            "%s %s -> %s (%.1f ms) [request_id=%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
