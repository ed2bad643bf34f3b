"""HTTP middleware for request correlation, security headers and minification.

Usage (innermost first; Starlette runs the last-registered one outermost):
    app.middleware("http")(minify_html_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id
from app.utils.html_minifier import minify_html

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": (
        "geolocation=(), microphone=(), camera=(), payment=(), usb=(), "
        "accelerometer=(), autoplay=(), display-capture=(), gyroscope=(), "
        "magnetometer=(), midi=(), sync-xhr=(), xr-spatial-tracking=()"
    ),
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains; preload",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Cross-Origin-Embedder-Policy": "require-corp",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-Download-Options": "noopen",
    "X-DNS-Prefetch-Control": "off",
    "Cache-Control": "public, max-age=0, s-maxage=3600, must-revalidate",
}


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate or mint an ``X-Request-ID`` and time the request.

    The id is bound to a context variable for the duration of the request so
    every log line emitted while handling it carries the same correlation id.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def security_headers_middleware(request: Request, call_next) -> Response:
    response: Response = await call_next(request)
    if settings.app.security_headers_enabled:
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        response.headers["Server"] = settings.site.name
    return response


async def minify_html_middleware(request: Request, call_next) -> Response:
    """Minify ``text/html`` response bodies.

    Other content types pass through untouched and stay streamed. Response
    headers (including repeated ``Set-Cookie``) are carried over; only
    ``Content-Length`` is recomputed.
    """

    response: Response = await call_next(request)
    content_type = response.headers.get("content-type", "")
    if not settings.app.minify_html or not content_type.startswith("text/html"):
        return response

    body = b"".join([chunk async for chunk in response.body_iterator])
    charset = getattr(response, "charset", None) or "utf-8"
    minified = minify_html(body.decode(charset)).encode(charset)

    minified_response = Response(content=minified, status_code=response.status_code)
    minified_response.raw_headers = [
        (name, value) for name, value in response.raw_headers if name.lower() != b"content-length"
    ] + [(b"content-length", str(len(minified)).encode("latin-1"))]
    return minified_response
