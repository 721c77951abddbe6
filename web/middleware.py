"""
Request middleware: correlation ids, access logging, metrics and timeouts.

Registration order in web.main puts RequestLoggingMiddleware outside
RequestTimeoutMiddleware, so a timed-out request is still logged and
counted with its correlation id.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from fastapi.responses import ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from core.observability import (
    MetricsCollector,
    Timer,
    generate_correlation_id,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)

logger = get_logger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

# Probed every few seconds by orchestrators; never logged or time-limited
QUIET_PATHS = frozenset({"/health"})


def _access_level(method: str, status_code: int) -> int:
    # Dashboards poll every GET endpoint, so successful reads stay at DEBUG
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.DEBUG if method == "GET" else logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a correlation id and log one line when it ends.

    The id comes from the X-Request-ID header when the client sends one
    and is echoed back together with X-Response-Time. Counts, errors and
    latencies go to the app's MetricsCollector.
    """

    def __init__(self, app: ASGIApp, metrics: MetricsCollector):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        correlation_id = request.headers.get("X-Request-ID") or generate_correlation_id()
        set_correlation_id(correlation_id)
        endpoint = f"{request.method} {request.url.path}"
        quiet = request.url.path in QUIET_PATHS

        timer = Timer(endpoint)
        try:
            with timer:
                response = await call_next(request)
        except Exception as e:
            logger.exception(
                f"Unhandled error: {endpoint}",
                extra={"duration_ms": round(timer.elapsed_ms, 2)}
            )
            self.metrics.record_error(type(e).__name__)
            raise

        response.headers["X-Request-ID"] = correlation_id
        response.headers["X-Response-Time"] = f"{timer.elapsed_ms:.2f}ms"

        self.metrics.record_request(endpoint)
        self.metrics.record_timing(endpoint, timer.elapsed_ms)
        if response.status_code >= 400:
            self.metrics.record_error(f"HTTP_{response.status_code}")

        if not quiet:
            logger.log(
                _access_level(request.method, response.status_code),
                f"{endpoint} -> {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": round(timer.elapsed_ms, 2),
                    "client_ip": request.client.host if request.client else "unknown",
                }
            )
        return response


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """
    Answer 504 with the error envelope when a request runs too long.

    `slow_paths` (the assistant chat) get `slow_timeout` since they wait
    on the model; everything else gets `timeout`.
    """

    def __init__(
        self,
        app: ASGIApp,
        timeout: float = 30.0,
        slow_timeout: float = 120.0,
        slow_paths: Iterable[str] = ("/api/chat",),
    ):
        super().__init__(app)
        self.timeout = timeout
        self.slow_timeout = slow_timeout
        self.slow_paths = frozenset(slow_paths)

    def timeout_for(self, path: str) -> float:
        return self.slow_timeout if path in self.slow_paths else self.timeout

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        limit = self.timeout_for(path)
        try:
            return await asyncio.wait_for(call_next(request), timeout=limit)
        except asyncio.TimeoutError:
            logger.warning(
                f"Timed out after {limit}s: {request.method} {path}",
                extra={"timeout": limit}
            )
            return ORJSONResponse(
                status_code=504,
                content={
                    "success": False,
                    "error": f"Request exceeded {limit}s timeout",
                    "correlation_id": get_correlation_id(),
                },
            )
