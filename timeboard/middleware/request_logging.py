"""Middleware that logs every API request with its latency."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

_QUIET_ROUTES = ("/health", "/docs", "/openapi.json", "/redoc")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        # Get the matched route template from FastAPI
        route = request.scope.get("route")
        route_template = route.path if route else request.url.path

        if route_template in _QUIET_ROUTES:
            return response

        principal = getattr(request.state, "principal", None)
        logger.info(
            "%s %s -> %d in %.2fms (principal=%s)",
            request.method,
            route_template,
            response.status_code,
            duration_ms,
            principal.id if principal else "anonymous",
        )
        return response
