from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, Response

from app.core.config import settings
from app.core.rate_limit import retry_after_seconds
from app.core.templates import render_page
from app.services.feeds import SITE_PAGES, build_sitemap_xml

router = APIRouter(tags=["Pages"])


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> Response:
    return render_page(request, "home.html")


@router.get("/resume", response_class=HTMLResponse)
def resume(request: Request) -> Response:
    return render_page(request, "resume.html")


@router.get("/projects", response_class=HTMLResponse)
def projects(request: Request) -> Response:
    return render_page(request, "projects.html")


@router.get("/sitemap", response_class=HTMLResponse)
def sitemap_page(request: Request) -> Response:
    """Human-readable list of the pages in sitemap.xml."""
    return render_page(request, "sitemap.html", data=SITE_PAGES)


@router.get("/sitemap.xml")
def sitemap_xml() -> Response:
    return Response(
        content=build_sitemap_xml(settings.site.base_url),
        media_type="application/xml",
    )


@router.get("/ratelimit", response_class=HTMLResponse)
def ratelimit_page(request: Request) -> Response:
    """Explain the rate limit; served with 429 like the throttled response."""
    return render_page(
        request,
        "ratelimit.html",
        title="Rate Limit Exceeded",
        data={"retry_after": retry_after_seconds(settings.app.rate_limit_window_seconds)},
        status_code=429,
    )
