"""Middleware that logs every API request with its matched route and latency."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

_SKIPPED_ROUTES = {"/health", "/docs", "/openapi.json", "/redoc"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        # Get the matched route template from FastAPI
        route = request.scope.get("route")
        route_template = route.path if route else request.url.path

        if route_template in _SKIPPED_ROUTES:
            return response

        logger.info(
            "%s %s -> %d (%.2f ms)",
            request.method,
            route_template,
            response.status_code,
            duration_ms,
        )
        return response
