"""Security headers middleware.

Learn: Every response, including 401/403/404 errors, gets:
- X-Content-Type-Options: nosniff (no MIME sniffing of JSON)
- X-Frame-Options: DENY (the API is never framed)
- Referrer-Policy: limits referrer leakage
Responses to requests that carried an Authorization header also get
Cache-Control: no-store, since they contain one user's tasks.
HSTS is only sent over HTTPS; sending it on plain HTTP is meaningless.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

STATIC_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(self, app, hsts_max_age: int = 31536000):
        super().__init__(app)
        self.hsts = f"max-age={hsts_max_age}; includeSubDomains"

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers.update(STATIC_HEADERS)
        if "authorization" in request.headers:
            response.headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = self.hsts
        return response
