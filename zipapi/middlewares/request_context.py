"""Per-request logging context."""

import time
import uuid

import structlog
from fastapi import Request
from starlette.datastructures import MutableHeaders

from zipapi.core.logger import LogIcon, logger
from zipapi.middlewares.base import BaseMiddleware

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseMiddleware):
    """Binds a request id to the log context and echoes it in the response."""

    def before(self, request: Request) -> Request:
        request_id = uuid.uuid4().hex
        request.state.request_id = request_id
        request.state.started_at = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        logger.info("Request started", icon=LogIcon.NETWORK)
        return request

    def after(self, request: Request, status_code: int, headers: MutableHeaders) -> None:
        duration = time.perf_counter() - request.state.started_at
        headers[REQUEST_ID_HEADER] = request.state.request_id
        logger.info("Response started", icon=LogIcon.TIMER, status=status_code, duration=f"{duration:.3f}s")
