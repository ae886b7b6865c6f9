from fastapi import Request
import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("polis")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request. Server errors are logged at ERROR level."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.1f}"

        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        logger.log(level, f"{request.method} {target} -> {response.status_code} in {elapsed_ms:.1f}ms")
        return response
