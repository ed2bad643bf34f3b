"""Per-visitor rate limiting middleware.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: the middleware only talks to ``AbstractRateLimiter``.
- One limiter per app: it is built by the app factory, stored on
  ``app.state.rate_limiter`` and shut down when the app's lifespan ends.
- Visitors are keyed by a long-lived cookie, not by IP address.

Static assets, health checks and the rate-limit page itself are never
throttled.
"""

from __future__ import annotations

import logging
import math
import time

from fastapi import FastAPI, Request, Response

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from app.core.config import AppSettings, settings
from app.core.templates import render_page
from app.core.visitor import get_visitor_id, hash_visitor_id, set_visitor_cookie

logger = logging.getLogger(__name__)

SKIPPED_PATH_PREFIXES = ("/static/",)
SKIPPED_PATHS = frozenset(
    {"/health", "/metrics", "/ratelimit", "/favicon.ico", "/robots.txt"}
)


def build_rate_limiter(app_settings: AppSettings | None = None) -> AbstractRateLimiter:
    """Construct the limiter described by the application settings."""

    cfg = app_settings or settings.app
    return InMemoryTokenBucketRateLimiter(
        burst_size=cfg.rate_limit_burst_size,
        window_seconds=cfg.rate_limit_window_seconds,
        cleanup_interval_seconds=cfg.rate_limit_cleanup_interval_seconds,
    )


def get_rate_limiter(app: FastAPI) -> AbstractRateLimiter | None:
    """Return the limiter attached to ``app``, if rate limiting is enabled."""

    return getattr(app.state, "rate_limiter", None)


def retry_after_seconds(window_seconds: float) -> int:
    """Whole seconds a throttled visitor is told to wait (rounded up)."""
    return math.ceil(window_seconds)


def should_skip_rate_limit(path: str) -> bool:
    return path.startswith(SKIPPED_PATH_PREFIXES) or path in SKIPPED_PATHS


def _rate_limit_headers(limiter: AbstractRateLimiter, remaining: int) -> dict[str, str]:
    reset_at = int(time.time() + limiter.window_seconds)
    return {
        "X-RateLimit-Limit": str(limiter.burst_size),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset_at),
    }


def _rate_limited_response(request: Request, limiter: AbstractRateLimiter) -> Response:
    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers.update(_rate_limit_headers(limiter, 0))
        headers["Retry-After"] = str(retry_after_seconds(limiter.window_seconds))

    return render_page(
        request,
        "ratelimit.html",
        title="Rate Limit Exceeded",
        data={"retry_after": retry_after_seconds(limiter.window_seconds)},
        status_code=429,
        headers=headers,
    )


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing the per-visitor request budget.

    Each visitor (identified by cookie, minted on first visit) spends one
    token per request. When the bucket is empty the rate-limit page is
    rendered with status 429 and retry hints instead of calling the route.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The route's response, or the 429 page.
    """

    limiter = get_rate_limiter(request.app)
    if limiter is None or should_skip_rate_limit(request.url.path):
        return await call_next(request)

    cookie_name = settings.app.visitor_cookie_name
    visitor_id, is_new = get_visitor_id(request, cookie_name)
    key_hash = hash_visitor_id(visitor_id)

    if not limiter.allow(visitor_id):
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "key_hash": key_hash,
                "limit": limiter.burst_size,
                "window_s": limiter.window_seconds,
                "path": request.url.path,
            },
        )
        response = _rate_limited_response(request, limiter)
    else:
        remaining = limiter.remaining_tokens(visitor_id)
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": limiter.burst_size,
                "remaining": remaining,
            },
        )
        response = await call_next(request)
        if settings.app.rate_limit_include_headers and remaining is not None:
            for name, value in _rate_limit_headers(limiter, remaining).items():
                response.headers[name] = value

    if is_new:
        set_visitor_cookie(response, cookie_name, visitor_id)
    return response
