"""
Library Gateway — Request Body Size Middleware
===============================================

What:  Rejects requests whose declared body is larger than the configured limit.
How:   Reads Content-Length before the route runs; over the limit → 413 JSON.
When:  Inside CORS and RequestIDMiddleware (so the 413 carries allow-origin
       and X-Request-ID), before any multipart parsing or buffering.

This is the request-wide half of the payload policy. The per-file half
(settings.max_file_size) is enforced in StorageService.validate_upload, which
also covers chunked uploads that send no Content-Length.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from library_gateway.config import settings
from library_gateway.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Content-Length gate.

    Configuration (from settings):
        max_request_size: Largest accepted body in bytes (default 11MB:
        a 10MB file plus multipart overhead)

    A malformed Content-Length is answered with 400 rather than passed on.
    """

    def __init__(self, app, max_size: int = None, **kwargs):
        super().__init__(app, **kwargs)
        self.max_size = max_size or settings.max_request_size

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        declared = request.headers.get("content-length")
        if declared is None:
            return await call_next(request)

        try:
            length = int(declared)
        except ValueError:
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Invalid Content-Length header",
                    "request_id": request_id_var.get(""),
                },
            )

        if length > self.max_size:
            limit_mb = self.max_size / (1024 * 1024)
            logger.warning(
                "Rejected %s %s: body of %d bytes exceeds %d",
                request.method,
                request.url.path,
                length,
                self.max_size,
            )
            return JSONResponse(
                status_code=413,
                content={
                    "error": f"Request body exceeds maximum of {limit_mb:.0f}MB",
                    "details": f"Content-Length {length} > {self.max_size}",
                    "request_id": request_id_var.get(""),
                },
            )

        return await call_next(request)
