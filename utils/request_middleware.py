import time
import uuid
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from utils.logging import app_logger, log_request_start, log_request_end, log_error


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with a short id and logs its start, end and failures"""

    SKIP_PATHS = ("/", "/health", "/docs", "/redoc", "/openapi.json")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()
        request_info = log_request_start(request, f"{request.method} {request.url.path} [{request_id}]")

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            log_error(e, request_info["endpoint"], {"duration_ms": round(elapsed_ms, 2)})
            log_request_end(request_info, elapsed_ms, 500)
            # Internal detail stays in the log
            response = JSONResponse(status_code=500, content={"error": "Error interno del servidor."})
        else:
            log_request_end(request_info, (time.perf_counter() - started) * 1000, response.status_code)

        response.headers["X-Request-ID"] = request_id
        return response


class PerformanceLoggingMiddleware(BaseHTTPMiddleware):
    """Warns about slow requests and reports timing in a response header"""

    def __init__(self, app, slow_request_threshold_ms: float = 1000):
        super().__init__(app)
        self.slow_request_threshold_ms = slow_request_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        if elapsed_ms > self.slow_request_threshold_ms:
            app_logger.logger.warning(
                f"🐌 SLOW REQUEST | {request.method} {request.url.path} | "
                f"{elapsed_ms:.2f}ms > {self.slow_request_threshold_ms}ms"
            )

        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
        return response
