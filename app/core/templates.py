"""Jinja2 page rendering shared by the HTML routes."""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Any, Mapping

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

from app.core.config import settings
from app.services.feeds import page_title

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
STATIC_DIR = Path(__file__).resolve().parents[1] / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def site_context() -> dict[str, Any]:
    """Metadata every page template can reference as ``site``."""

    return {
        "name": settings.site.name,
        "description": settings.site.description,
        "author": settings.site.author,
        "base_url": settings.site.base_url,
        "year": dt.date.today().year,
    }


def render_page(
    request: Request,
    template_name: str,
    *,
    title: str | None = None,
    data: Any = None,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
) -> Response:
    """Render ``template_name`` (which extends ``base.html``) as a full page.

    Args:
        request: Current request (needed by Jinja2Templates for url_for).
        template_name: Template file under ``app/templates``.
        title: Page title shown in ``<title>`` and the heading; defaults to
            the sitemap title registered for the request path.
        data: Page-specific payload, available as ``page.data``.
        status_code: HTTP status for the response.
        headers: Extra response headers.

    Returns:
        Response: The rendered HTML response.
    """

    path = request.url.path
    context = {
        "site": site_context(),
        "page": {"title": title or page_title(path), "path": path, "data": data},
    }
    return templates.TemplateResponse(
        request,
        template_name,
        context,
        status_code=status_code,
        headers=dict(headers) if headers else None,
    )
