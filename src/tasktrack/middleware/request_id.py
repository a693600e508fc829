"""Request ID middleware — unique ID per request for tracing.

Learn: Every request gets a UUID, either from the incoming
X-Request-ID header or auto-generated. The ID is bound to structlog's
contextvars so it appears in every log entry for that request (the auth
dependency adds user_id and role on top), and is echoed back in the
response header.
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Generate and propagate a unique request ID."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        # Fresh context per request; nothing leaks from the previous one
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )

        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
