# ===================================
# middleware.py - Custom Middleware
# ===================================

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from monitoring import APIMetrics


class MetricsMiddleware(BaseHTTPMiddleware):
    """Times each request, records its status per route template and tags the response"""

    def __init__(self, app, metrics: APIMetrics):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        start_time = time.perf_counter()
        response = await call_next(request)
        response_time_ms = (time.perf_counter() - start_time) * 1000

        # Group by route template so /stocks/AAPL and /stocks/MSFT share a bucket
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        self.metrics.record_request(f"{request.method} {path}", response_time_ms, response.status_code)

        response.headers["X-Response-Time"] = f"{response_time_ms:.2f}ms"
        response.headers["X-Request-ID"] = request_id

        return response
