"""Markdown changelog parser.

Turns a "Keep a Changelog"-style document into ``ChangelogData``. The
convention understood here is deliberately small:

    ## [1.2.0] - 2024-01-15      version heading, date optional
    ### Added                     change-type heading (letters only)
    - **New** thing               list item in the current group

Parsing is a single pass over the lines driven by a three-state machine.
It is lenient: anything that doesn't match one of the line shapes above is
ignored, and the only failure is input that cannot be decoded as UTF-8.
"""

from __future__ import annotations

import datetime as dt
import enum
import logging
import re
from dataclasses import dataclass, field

from app.core.errors import ChangelogParseError
from app.schemas.changelog import (
    UNRELEASED_VERSION,
    Change,
    ChangelogData,
    ChangelogEntry,
)
from app.utils.text_normalizer import split_lines, strip_inline_markdown

logger = logging.getLogger(__name__)

VERSION_HEADING_RE = re.compile(r"^## \[([^\]]+)\](?:\s*-\s*(.+))?$")
CHANGE_TYPE_HEADING_RE = re.compile(r"^### ([A-Za-z]+)$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
LIST_ITEM_PREFIX = "- "


class ParserState(enum.Enum):
    BETWEEN_ENTRIES = "between_entries"
    IN_ENTRY = "in_entry"
    IN_CHANGE_GROUP = "in_change_group"


@dataclass
class _GroupBuilder:
    type: str
    items: list[str] = field(default_factory=list)
    raw_lines: list[str] = field(default_factory=list)

    def build(self) -> Change:
        return Change(
            type=self.type,
            items=tuple(self.items),
            raw_content="\n".join(self.raw_lines),
        )


@dataclass
class _EntryBuilder:
    version: str
    date: dt.date | None
    changes: list[Change] = field(default_factory=list)
    raw_lines: list[str] = field(default_factory=list)

    def build(self) -> ChangelogEntry:
        return ChangelogEntry(
            version=self.version,
            date=self.date,
            is_unreleased=self.version == UNRELEASED_VERSION,
            changes=tuple(self.changes),
            raw_content="\n".join(self.raw_lines),
        )


def parse_release_date(value: str | None) -> dt.date | None:
    """Parse a ``YYYY-MM-DD`` date, returning None for anything else."""
    if not value:
        return None
    value = value.strip()
    if not ISO_DATE_RE.match(value):
        return None
    try:
        return dt.datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


class ChangelogParser:
    """Line-at-a-time changelog state machine.

    ``feed`` each line, then call ``finish`` once to get the parsed data.
    A parser instance is single-use.
    """

    def __init__(self) -> None:
        self.state = ParserState.BETWEEN_ENTRIES
        self._entries: list[ChangelogEntry] = []
        self._entry: _EntryBuilder | None = None
        self._group: _GroupBuilder | None = None

    def _flush_group(self) -> None:
        # Groups without items are dropped.
        if self._group is not None and self._entry is not None and self._group.items:
            self._entry.changes.append(self._group.build())
        self._group = None

    def _flush_entry(self) -> None:
        self._flush_group()
        if self._entry is not None:
            self._entries.append(self._entry.build())
        self._entry = None

    def _start_entry(self, version: str, date_text: str | None, line: str) -> None:
        self._flush_entry()
        self._entry = _EntryBuilder(version=version, date=parse_release_date(date_text))
        self._entry.raw_lines.append(line)
        self.state = ParserState.IN_ENTRY

    def _start_group(self, change_type: str, line: str) -> None:
        self._flush_group()
        self._group = _GroupBuilder(type=change_type, raw_lines=[line])
        self.state = ParserState.IN_CHANGE_GROUP

    def _add_item(self, group: _GroupBuilder, line: str) -> None:
        group.items.append(strip_inline_markdown(line[len(LIST_ITEM_PREFIX):]))
        group.raw_lines.append(line)

    def feed(self, raw_line: str) -> None:
        line = raw_line.strip()

        match = VERSION_HEADING_RE.match(line)
        if match:
            self._start_entry(match.group(1), match.group(2), line)
            return

        entry = self._entry
        if entry is None:
            # Content before the first version heading (title, intro) is skipped.
            return

        match = CHANGE_TYPE_HEADING_RE.match(line)
        if match:
            # Type headings belong to the group's raw text only.
            self._start_group(match.group(1), line)
            return

        group = self._group
        if group is not None and line.startswith(LIST_ITEM_PREFIX):
            self._add_item(group, line)
        entry.raw_lines.append(line)

    def finish(self) -> ChangelogData:
        self._flush_entry()
        self.state = ParserState.BETWEEN_ENTRIES
        return ChangelogData.from_entries(self._entries)


def _decode(content: str | bytes) -> str:
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ChangelogParseError(
            code="changelog_undecodable",
            message="Changelog source is not valid UTF-8 text.",
            details={"encoding": "utf-8", "hint": str(exc)},
        ) from exc


def parse_changelog(content: str | bytes) -> ChangelogData:
    """Parse markdown changelog content into structured data.

    Args:
        content: The changelog document, as text or UTF-8 bytes.

    Returns:
        ChangelogData: Entries in document order.

    Raises:
        ChangelogParseError: If ``content`` is bytes that aren't valid UTF-8.
    """
    text = _decode(content)

    parser = ChangelogParser()
    for line in split_lines(text):
        parser.feed(line)
    data = parser.finish()

    logger.debug(
        "changelog.parsed",
        extra={
            "entries": data.total,
            "changes": sum(len(entry.changes) for entry in data.entries),
        },
    )
    return data
