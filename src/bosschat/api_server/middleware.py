# src/bosschat/api_server/middleware.py
"""
Request-context middleware for the bosschat API server.

Every request gets a request id. It is bound to structlog's context-local
storage for the lifetime of the handler, so both structlog and stdlib log
records emitted while handling the request carry it, and it is echoed back
in the ``X-Request-ID`` response header.
"""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.contextvars import bind_contextvars, clear_contextvars

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds ``request_id``, ``method`` and ``path`` to the logging context.

    An incoming ``X-Request-ID`` header is reused so ids can be correlated
    across a proxy; otherwise a fresh UUID is generated.
    """

    def __init__(self, app, enable_request_logging: bool = True):
        super().__init__(app)
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        clear_contextvars()
        bind_contextvars(request_id=request_id, method=request.method, path=request.url.path)
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            if self.enable_request_logging:
                logger.info(
                    "Request handled",
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 1),
                )
            return response
        except Exception as e:
            logger.error("Request failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            clear_contextvars()
