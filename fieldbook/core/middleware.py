"""Request logging middleware."""

import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger("fieldbook.requests")

SLOW_REQUEST_SECONDS = 1.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with status and timing."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start_time = time.perf_counter()

        request_id = request.headers.get("X-Request-ID") or str(time.time_ns())
        request.state.request_id = request_id

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        logger.info(
            "%s %s -> %s (%.3fs) id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration,
            request_id,
        )
        if duration > SLOW_REQUEST_SECONDS:
            logger.warning(
                "SLOW REQUEST: %s %s took %.3fs", request.method, request.url.path, duration
            )

        return response
