"""Security headers middleware.

Adds standard security headers to every response:
- X-Content-Type-Options: prevents MIME-type sniffing
- X-Frame-Options: prevents clickjacking
- Referrer-Policy: keeps reset/verify tokens in URLs out of referrers
- Strict-Transport-Security: forces HTTPS (only on HTTPS connections)

Responses under /auth/ and /members/ carry account data or fresh API
keys, so they are also marked Cache-Control: no-store.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

NO_STORE_PATHS = ("/auth/", "/members/", "/admin/")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if any(part in request.url.path for part in NO_STORE_PATHS):
            response.headers["Cache-Control"] = "no-store"
        # Only add HSTS on HTTPS connections
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response
