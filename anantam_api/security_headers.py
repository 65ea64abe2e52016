"""
Security headers middleware

Every API response is JSON, so the content policy is locked down to nothing
but same-origin framing by the configured frontend origins.
"""

import logging
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import ALLOWED_ORIGINS, ENVIRONMENT

logger = logging.getLogger(__name__)

IS_PRODUCTION = ENVIRONMENT == "production"


def get_csp_policy() -> str:
    frame_ancestors = " ".join(["'self'"] + ALLOWED_ORIGINS)
    directives = [
        "default-src 'none'",
        f"frame-ancestors {frame_ancestors}",
        "img-src 'self' data: https:",
        "base-uri 'none'",
        "form-action 'self'",
    ]
    return "; ".join(directives)


def get_permissions_policy() -> str:
    features = [
        "accelerometer=()",
        "camera=()",
        "geolocation=()",
        "microphone=()",
        "payment=()",
        "usb=()",
    ]
    return ", ".join(features)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers to all responses except the excluded path prefixes"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return response

        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = get_csp_policy()
        response.headers["Permissions-Policy"] = get_permissions_policy()
        response.headers["X-Permitted-Cross-Domain-Policies"] = "none"

        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Authenticated responses must not be cached by intermediaries
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"

        return response
