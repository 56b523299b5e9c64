"""HTTP request metrics.

Requests are labelled with the matched route template
(``/v1/issuer/credentials/{credential_id}/approve``) rather than the raw
path, which keeps one time series per route instead of one per credential.
Anything that matched no route is ``unmatched``.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from vcanchor.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

# Scrapes would otherwise dominate the counters.
UNINSTRUMENTED_PATHS = frozenset({"/metrics"})


def endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in UNINSTRUMENTED_PATHS:
            return await call_next(request)

        status_code = 500
        started = time.perf_counter()
        with ACTIVE_REQUESTS.track_inprogress():
            try:
                response = await call_next(request)
                status_code = response.status_code
            finally:
                # The route is only in scope once routing has run.
                endpoint = endpoint_label(request)
                REQUEST_DURATION.labels(request.method, endpoint).observe(
                    time.perf_counter() - started
                )
                REQUEST_COUNT.labels(request.method, endpoint, str(status_code)).inc()
        return response
