"""Cookie-based visitor identification used to key the rate limiter."""

from __future__ import annotations

import hashlib
import secrets

from fastapi import Request, Response

VISITOR_COOKIE_MAX_AGE = 86400 * 30


def generate_visitor_id() -> str:
    """Return a fresh random 16-hex-character visitor id."""
    return secrets.token_hex(8)


def get_visitor_id(request: Request, cookie_name: str) -> tuple[str, bool]:
    """Read the visitor id cookie, minting a new id when it is missing.

    Returns:
        tuple: ``(visitor_id, is_new)``; when ``is_new`` is True the caller
            must persist the id with :func:`set_visitor_cookie`.
    """
    visitor_id = request.cookies.get(cookie_name)
    if visitor_id:
        return visitor_id, False
    return generate_visitor_id(), True


def set_visitor_cookie(response: Response, cookie_name: str, visitor_id: str) -> None:
    response.set_cookie(
        key=cookie_name,
        value=visitor_id,
        max_age=VISITOR_COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        secure=False,
        samesite="lax",
    )


def hash_visitor_id(visitor_id: str) -> str:
    """Hash a visitor id for logging without exposing the cookie value."""
    return hashlib.sha256(visitor_id.encode()).hexdigest()[:16]
