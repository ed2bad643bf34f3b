"""Changelog queries: filtering, statistics and page-level assembly.

Every function here is a pure transformation over immutable
``ChangelogData`` snapshots, so concurrent requests can share nothing and
need no locking. The source document is re-read and re-parsed per request.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections import Counter
from pathlib import Path

from app.core.errors import ChangelogParseError, NotFoundAppError
from app.schemas.changelog import (
    Change,
    ChangelogData,
    ChangelogEntry,
    ChangelogFilter,
    ChangelogStats,
    ChangelogView,
    DateRange,
)
from app.services.changelog_parser import parse_changelog, parse_release_date

logger = logging.getLogger(__name__)


def _entry_in_date_range(entry: ChangelogEntry, flt: ChangelogFilter) -> bool:
    if flt.date_from is None and flt.date_to is None:
        return True
    # An undated entry never satisfies an active bound.
    if entry.date is None:
        return False
    if flt.date_from is not None and entry.date < flt.date_from:
        return False
    if flt.date_to is not None and entry.date > flt.date_to:
        return False
    return True


def _entry_passes(entry: ChangelogEntry, flt: ChangelogFilter) -> bool:
    if entry.is_unreleased and not flt.show_unreleased:
        return False
    if flt.version and flt.version.lower() not in entry.version.lower():
        return False
    return _entry_in_date_range(entry, flt)


def _change_passes(change: Change, flt: ChangelogFilter) -> bool:
    if flt.change_type and change.type.lower() != flt.change_type.lower():
        return False
    if flt.search:
        needle = flt.search.lower()
        if needle not in change.type.lower() and not any(
            needle in item.lower() for item in change.items
        ):
            return False
    return True


def filter_changelog(data: ChangelogData, flt: ChangelogFilter) -> ChangelogData:
    """Apply ``flt`` to ``data`` and return a new ``ChangelogData``.

    Entries are dropped by the unreleased/version/date predicates. Within a
    surviving entry each change group is checked against the type and search
    predicates; the entry is kept if any group survives, or unconditionally
    when neither a type nor a search term was given.

    Args:
        data: Parsed changelog (left untouched).
        flt: Filter predicates; unset predicates match everything.

    Returns:
        ChangelogData: Filtered copy in the original order.
    """
    group_filtering = bool(flt.change_type or flt.search)

    kept: list[ChangelogEntry] = []
    for entry in data.entries:
        if not _entry_passes(entry, flt):
            continue

        changes = tuple(change for change in entry.changes if _change_passes(change, flt))
        if changes or not group_filtering:
            kept.append(entry.model_copy(update={"changes": changes}))

    return ChangelogData.from_entries(kept)


def aggregate_changelog(data: ChangelogData) -> ChangelogStats:
    """Compute counts and ranges over ``data``.

    Latest/oldest are the first/last entries in document order, which is
    newest-first by convention; they are not sorted by date. The date range
    only considers entries that carry a date.
    """
    if not data.entries:
        return ChangelogStats()

    type_counts: Counter[str] = Counter()
    version_counts: dict[str, int] = {}
    dates: list[dt.date] = []

    for entry in data.entries:
        version_counts[entry.version] = len(entry.changes)
        type_counts.update(change.type for change in entry.changes)
        if entry.date is not None:
            dates.append(entry.date)

    return ChangelogStats(
        total_versions=len(data.entries),
        total_changes=sum(type_counts.values()),
        change_type_counts=dict(type_counts),
        version_counts=version_counts,
        latest_version=data.entries[0].version,
        oldest_version=data.entries[-1].version,
        date_range=DateRange(start=min(dates), end=max(dates)) if dates else DateRange(),
    )


def distinct_versions(data: ChangelogData) -> list[str]:
    """Version identifiers in document order."""
    return [entry.version for entry in data.entries]


def distinct_change_types(data: ChangelogData) -> set[str]:
    """Set of change type labels used anywhere in ``data``."""
    return {change.type for entry in data.entries for change in entry.changes}


def load_changelog_source(path: Path) -> str:
    """Read the changelog markdown document.

    Args:
        path: Location of the document.

    Returns:
        str: File contents decoded as UTF-8.

    Raises:
        NotFoundAppError: If the file does not exist.
        ChangelogParseError: If the file is not valid UTF-8.
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("changelog.source_missing", extra={"path": str(path)})
        raise NotFoundAppError(
            code="changelog_not_found",
            message="Changelog not found.",
            details={"path": path.name},
        ) from None
    except UnicodeDecodeError as exc:
        raise ChangelogParseError(
            code="changelog_undecodable",
            message="Changelog is not valid UTF-8.",
            details={"path": path.name, "hint": str(exc)},
        ) from exc


def parse_filter_params(
    *,
    version: str | None = None,
    change_type: str | None = None,
    search: str | None = None,
    unreleased: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
) -> ChangelogFilter:
    """Build a filter from raw query-string values.

    Empty values are treated as unset. ``unreleased`` only shows unreleased
    entries when it is exactly ``"true"``; any other non-empty value hides
    them. Dates that aren't ``YYYY-MM-DD`` are ignored.
    """
    return ChangelogFilter(
        version=version or None,
        change_type=change_type or None,
        search=search or None,
        show_unreleased=(unreleased == "true") if unreleased else True,
        date_from=parse_release_date(date_from),
        date_to=parse_release_date(date_to),
    )


def build_changelog_view(content: str | bytes, flt: ChangelogFilter) -> ChangelogView:
    """Parse ``content`` and assemble the data the changelog pages render.

    Statistics, versions and change types describe the whole document so
    the filter controls stay stable while the entry list narrows.
    """
    data = parse_changelog(content)
    filtered = filter_changelog(data, flt)

    logger.info(
        "changelog.filtered",
        extra={
            "entries_total": data.total,
            "entries_matched": filtered.total,
            "has_search": bool(flt.search),
            "change_type": flt.change_type,
        },
    )

    return ChangelogView(
        changelog=filtered,
        stats=aggregate_changelog(data),
        versions=distinct_versions(data),
        change_types=sorted(distinct_change_types(data)),
        filter=flt,
    )
