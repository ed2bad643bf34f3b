"""XML documents served by the site: the changelog RSS feed and sitemap.xml."""

from __future__ import annotations

import datetime as dt
import html
from dataclasses import dataclass
from email.utils import format_datetime
from xml.etree import ElementTree as ET

from app.core.config import SiteSettings
from app.schemas.changelog import ChangelogData, ChangelogEntry

ATOM_NS = "http://www.w3.org/2005/Atom"
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
RSS_MAX_ITEMS = 20

ET.register_namespace("atom", ATOM_NS)


@dataclass(frozen=True)
class SitePage:
    path: str
    title: str
    change_freq: str
    priority: str


SITE_PAGES: tuple[SitePage, ...] = (
    SitePage("/", "Home", "weekly", "1.0"),
    SitePage("/sitemap", "Sitemap", "monthly", "0.5"),
    SitePage("/resume", "Resume", "monthly", "0.7"),
    SitePage("/projects", "Projects", "weekly", "0.8"),
    SitePage("/changelog", "Changelog", "weekly", "0.7"),
)

_PAGE_TITLES = {page.path: page.title for page in SITE_PAGES}


def page_title(path: str) -> str:
    """Human-readable title for a site path ("Page" when unknown)."""
    return _PAGE_TITLES.get(path, "Page")


def _xml_document(root: ET.Element) -> str:
    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n"


def build_sitemap_xml(base_url: str, today: dt.date | None = None) -> str:
    """Render sitemap.xml for ``SITE_PAGES`` under ``base_url``."""
    lastmod = (today or dt.date.today()).isoformat()

    urlset = ET.Element("urlset", xmlns=SITEMAP_NS)
    for page in SITE_PAGES:
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = base_url + page.path
        ET.SubElement(url, "lastmod").text = lastmod
        ET.SubElement(url, "changefreq").text = page.change_freq
        ET.SubElement(url, "priority").text = page.priority

    return _xml_document(urlset)


def _entry_description(entry: ChangelogEntry) -> str:
    parts: list[str] = []
    for change in entry.changes:
        parts.append(f"<h3>{html.escape(change.type)}</h3><ul>")
        parts.extend(f"<li>{html.escape(item)}</li>" for item in change.items)
        parts.append("</ul>")
    return "".join(parts)


def _rfc2822(value: dt.date) -> str:
    return format_datetime(dt.datetime(value.year, value.month, value.day, tzinfo=dt.timezone.utc))


def build_changelog_rss(
    data: ChangelogData,
    site: SiteSettings,
    *,
    limit: int = RSS_MAX_ITEMS,
    now: dt.datetime | None = None,
) -> str:
    """Render an RSS 2.0 feed with one item per changelog entry.

    Only the first ``limit`` entries (the newest, by document order) are
    included. Entries without a date get no ``pubDate``.
    """
    changelog_url = f"{site.base_url}/changelog"
    build_time = now or dt.datetime.now(dt.timezone.utc)

    rss = ET.Element("rss", version="2.0")
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = f"{site.name} - Changelog"
    ET.SubElement(channel, "description").text = site.description
    ET.SubElement(channel, "link").text = changelog_url
    ET.SubElement(
        channel,
        f"{{{ATOM_NS}}}link",
        href=f"{site.base_url}/changelog.rss",
        rel="self",
        type="application/rss+xml",
    )
    ET.SubElement(channel, "language").text = "en-us"
    ET.SubElement(channel, "lastBuildDate").text = format_datetime(build_time)

    for entry in data.entries[:limit]:
        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = f"Version {entry.version}"
        ET.SubElement(item, "link").text = f"{changelog_url}#{entry.version}"
        ET.SubElement(item, "guid").text = f"{changelog_url}#{entry.version}"
        if entry.date is not None:
            ET.SubElement(item, "pubDate").text = _rfc2822(entry.date)
        # ElementTree escapes the markup, which RSS readers unescape.
        ET.SubElement(item, "description").text = _entry_description(entry)

    return _xml_document(rss)
