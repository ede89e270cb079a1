"""Prometheus instrumentation for HTTP requests."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from concierge.telemetry import observe_request


def route_template(request: Request) -> str:
    """Matched route path (``/conversations/{conversation_id}/messages``) or the raw path."""

    return getattr(request.scope.get("route"), "path", None) or request.url.path


class TelemetryMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            # The route is only known once the router has matched the request.
            observe_request(
                request.method,
                route_template(request),
                status_code,
                time.perf_counter() - started,
            )
