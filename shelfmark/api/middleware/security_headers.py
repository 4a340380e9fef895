"""
Security response headers.

Sets the browser hardening headers on every response: content sniffing,
framing, referrer, cross-origin isolation and a content security policy.
HSTS is only sent in production, where the API sits behind HTTPS.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


DEFAULT_CSP = "; ".join([
    "default-src 'self'",
    "base-uri 'self'",
    "font-src 'self' https: data:",
    "form-action 'self'",
    "frame-ancestors 'self'",
    "img-src 'self' data:",
    "object-src 'none'",
    "script-src 'self'",
    "style-src 'self' https: 'unsafe-inline'",
    "upgrade-insecure-requests",
])


@dataclass
class SecurityHeadersConfig:
    """Headers added to responses."""

    headers: Dict[str, str] = field(default_factory=lambda: {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
        "Referrer-Policy": "no-referrer",
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-origin",
        "X-DNS-Prefetch-Control": "off",
    })

    content_security_policy: Optional[str] = DEFAULT_CSP

    # Interactive docs load their assets from a CDN
    csp_excluded_paths: Set[str] = field(default_factory=lambda: {
        "/docs",
        "/redoc",
        "/docs/oauth2-redirect",
    })

    hsts: Optional[str] = None


def get_security_headers_config(environment: str = "development") -> SecurityHeadersConfig:
    """Security headers for the environment."""
    config = SecurityHeadersConfig()
    if environment == "production":
        config.hsts = "max-age=15552000; includeSubDomains"
    return config


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the configured headers unless the route already set them."""

    def __init__(self, app: FastAPI, config: Optional[SecurityHeadersConfig] = None):
        super().__init__(app)
        self.config = config or SecurityHeadersConfig()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        for name, value in self.config.headers.items():
            response.headers.setdefault(name, value)

        if self.config.content_security_policy and request.url.path not in self.config.csp_excluded_paths:
            response.headers.setdefault("Content-Security-Policy", self.config.content_security_policy)
        if self.config.hsts:
            response.headers.setdefault("Strict-Transport-Security", self.config.hsts)

        return response


def setup_security_headers(app: FastAPI, config: Optional[SecurityHeadersConfig] = None) -> None:
    """Install the security header middleware."""
    app.add_middleware(SecurityHeadersMiddleware, config=config or SecurityHeadersConfig())
