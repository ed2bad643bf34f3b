"""Changelog pages: HTML view, JSON API, RSS feed and raw markdown."""

from __future__ import annotations

from typing import Annotated

import mistune
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from app.core.config import settings
from app.core.templates import render_page
from app.schemas.changelog import ChangelogFilter, ChangelogView
from app.services.changelog_parser import parse_changelog
from app.services.changelog_service import (
    build_changelog_view,
    load_changelog_source,
    parse_filter_params,
)
from app.services.feeds import build_changelog_rss

router = APIRouter(tags=["Changelog"])

_markdown = mistune.create_markdown(
    escape=True,
    hard_wrap=True,
    plugins=["strikethrough", "table", "task_lists", "url"],
)


def changelog_filter(
    version: Annotated[str | None, Query()] = None,
    change_type: Annotated[str | None, Query(alias="type")] = None,
    search: Annotated[str | None, Query()] = None,
    unreleased: Annotated[str | None, Query()] = None,
    date_from: Annotated[str | None, Query()] = None,
    date_to: Annotated[str | None, Query()] = None,
) -> ChangelogFilter:
    """Build a ChangelogFilter from the query string.

    Malformed dates are ignored rather than rejected, matching the lenient
    handling of the rest of the changelog pipeline.
    """
    return parse_filter_params(
        version=version,
        change_type=change_type,
        search=search,
        unreleased=unreleased,
        date_from=date_from,
        date_to=date_to,
    )


ChangelogFilterDep = Annotated[ChangelogFilter, Depends(changelog_filter)]


def _load_view(flt: ChangelogFilter) -> ChangelogView:
    return build_changelog_view(load_changelog_source(settings.app.changelog_path), flt)


@router.get("/changelog", response_class=HTMLResponse)
def changelog_page(request: Request, flt: ChangelogFilterDep) -> Response:
    """Render the filterable changelog page."""
    return render_page(request, "changelog.html", data=_load_view(flt))


@router.get("/changelog.json", response_model=ChangelogView)
def changelog_json(flt: ChangelogFilterDep) -> ChangelogView:
    """Filtered entries plus whole-document stats, versions and change types."""
    return _load_view(flt)


@router.get("/changelog.rss")
def changelog_rss() -> Response:
    data = parse_changelog(load_changelog_source(settings.app.changelog_path))
    return Response(
        content=build_changelog_rss(data, settings.site),
        media_type="application/rss+xml",
    )


@router.get("/changelog.md")
def changelog_markdown(format: Annotated[str | None, Query()] = None) -> Response:
    """Serve the changelog source, or its HTML rendering with ``?format=html``."""
    content = load_changelog_source(settings.app.changelog_path)
    if format == "html":
        return HTMLResponse(_markdown(content))
    return PlainTextResponse(content, media_type="text/markdown; charset=utf-8")
