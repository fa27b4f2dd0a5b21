"""
Chirp Backend — Request ID Middleware
=======================================

What:  Tags every request with a correlation id and echoes it as X-Request-ID.
How:   A client-sent X-Request-ID wins; otherwise an 8-character id is
       generated. The id lives in request_id_var for the rest of the request.
Who:   Outermost middleware. Readers of request_id_var:
           main.error_body        → "request_id" in every error envelope
           RequestLoggingMiddleware → the [id] field of the access line
           RateLimitMiddleware    → "request_id" in the 429 body
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds request_id_var and sets X-Request-ID, including on 429 and error responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "").strip() or new_request_id()
        # Not reset: the outer 500 handler still reads it
        request_id_var.set(rid)
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
