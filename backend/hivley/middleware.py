"""Security headers middleware.

Sets common security headers on every response:
 - Content-Security-Policy, with connect-src extended by the BaaS origin
 - Strict-Transport-Security
 - X-Frame-Options
 - X-Content-Type-Options: nosniff
 - Referrer-Policy
 - Cross-Origin-Opener-Policy / Cross-Origin-Resource-Policy
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp


def build_csp(baas_url: str = "") -> str:
    connect_src = "'self'"
    if baas_url:
        connect_src += f" {baas_url.rstrip('/')}"
    directives = [
        "default-src 'self'",
        "base-uri 'self'",
        "font-src 'self' https: data:",
        "form-action 'self'",
        "frame-ancestors 'self'",
        "img-src 'self' data: https:",
        "object-src 'none'",
        "script-src 'self'",
        "script-src-attr 'none'",
        "style-src 'self' https: 'unsafe-inline'",
        f"connect-src {connect_src}",
        "upgrade-insecure-requests",
    ]
    return "; ".join(directives)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, baas_url: str = "") -> None:
        super().__init__(app)
        self.headers = {
            "Content-Security-Policy": build_csp(baas_url),
            "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
            "X-Frame-Options": "SAMEORIGIN",
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "no-referrer",
            "Cross-Origin-Opener-Policy": "same-origin",
            "Cross-Origin-Resource-Policy": "same-origin",
            "X-DNS-Prefetch-Control": "off",
        }

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        for name, value in self.headers.items():
            if name not in response.headers:
                response.headers[name] = value
        return response
