"""
Request middleware.

- **Request ID**: every request/response carries an ``X-Request-ID`` header,
  and the ID is published to the logging context for correlation.
- **Request timing**: one access line per request, ``X-Process-Time`` header.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from clinicpos.core.logging import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 500
SPREADSHEET_SUFFIXES = ("/import", "/export/xlsx", "/sample-template")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Injects a unique request ID into every request/response cycle.

    An incoming ``X-Request-ID`` (e.g. from a reverse proxy) is reused;
    otherwise a UUID4 is generated.  The ID is stored on
    ``request.state.request_id`` and echoed back in the response header.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    One access log line per request, with ``X-Process-Time`` on the response.

    Requests slower than ``SLOW_REQUEST_MS`` are logged as warnings, except
    spreadsheet import/export/template routes, which parse or build whole
    workbooks.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}ms"

        path = request.url.path
        slow = elapsed_ms > SLOW_REQUEST_MS and not path.endswith(SPREADSHEET_SUFFIXES)
        logger.log(
            logging.WARNING if slow else logging.INFO,
            "%s %s %d %.2fms%s",
            request.method,
            path,
            response.status_code,
            elapsed_ms,
            " (SLOW)" if slow else "",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
