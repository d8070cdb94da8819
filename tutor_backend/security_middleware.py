"""
Security Middleware for the Code Tutor backend.

Adds hardening headers to every response:
- X-Content-Type-Options, X-Frame-Options, Referrer-Policy
- Content-Security-Policy suited to a JSON API that also serves avatars
- Strict-Transport-Security (production only)
"""

import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# The API renders no HTML, so nothing needs to load from it
API_CSP = "default-src 'none'; img-src 'self'; frame-ancestors 'none'; base-uri 'none'"

PERMISSIONS_POLICY = "geolocation=(), microphone=(), camera=(), payment=(), usb=()"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    Avatars are embedded by the frontend from another origin, so the
    resource policy allows cross-origin reads.
    """

    def __init__(self, app: ASGIApp, environment: str = "development"):
        super().__init__(app)
        self.environment = environment
        self.is_production = environment == "production"

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = API_CSP
        response.headers["Permissions-Policy"] = PERMISSIONS_POLICY
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"

        # max-age=31536000 = 1 year
        if self.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
