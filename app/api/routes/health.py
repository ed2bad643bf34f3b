from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Returns a simple status response to verify the site is operational.
    Exempt from rate limiting so load balancers can poll it freely.

    Returns:
        dict: ``{"status": "healthy", "service": "personal-website"}``.
    """

    return {"status": "healthy", "service": "personal-website"}
