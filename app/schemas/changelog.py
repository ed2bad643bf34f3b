"""Pydantic schemas for parsed changelog data, filters and statistics.

All models are frozen: a parse produces a fresh snapshot and filtering builds
a new ``ChangelogData`` instead of mutating the one it was given.
"""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

UNRELEASED_VERSION = "Unreleased"


class Change(BaseModel):
    """A group of changelog items sharing one type label (e.g. "Added")."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Change type label as written in the heading.")
    items: tuple[str, ...] = Field(
        default=(),
        description="Item descriptions with inline markdown emphasis/code removed.",
    )
    raw_content: str = Field(
        default="",
        description="The type heading and its list item lines as they appeared.",
    )


class ChangelogEntry(BaseModel):
    """One version section of the changelog."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., description="Version identifier, or 'Unreleased'.")
    date: dt.date | None = Field(
        default=None,
        description="Release date; absent for unreleased or undated sections.",
    )
    is_unreleased: bool = Field(
        default=False,
        description="True when the version is exactly 'Unreleased'.",
    )
    changes: tuple[Change, ...] = Field(default=())
    raw_content: str = Field(
        default="",
        description="Source lines from the version heading up to the next one, minus type headings.",
    )


class ChangelogData(BaseModel):
    """Ordered changelog entries (newest first, as written)."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[ChangelogEntry, ...] = Field(default=())
    total: int = Field(default=0, description="Number of entries.")

    @classmethod
    def from_entries(cls, entries: list[ChangelogEntry] | tuple[ChangelogEntry, ...]) -> "ChangelogData":
        return cls(entries=tuple(entries), total=len(entries))


class ChangelogFilter(BaseModel):
    """Optional predicates applied by ``filter_changelog``.

    Unset (None/empty) predicates match everything.
    """

    model_config = ConfigDict(frozen=True)

    version: str | None = Field(
        default=None, description="Case-insensitive substring of the version."
    )
    change_type: str | None = Field(
        default=None, description="Exact change type, compared case-insensitively."
    )
    date_from: dt.date | None = Field(default=None, description="Inclusive lower bound.")
    date_to: dt.date | None = Field(default=None, description="Inclusive upper bound.")
    search: str | None = Field(
        default=None,
        description="Case-insensitive substring of the change type or any item.",
    )
    show_unreleased: bool = Field(default=True)


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start: dt.date | None = Field(default=None, alias="from")
    end: dt.date | None = Field(default=None, alias="to")


class ChangelogStats(BaseModel):
    """Aggregate counts over a changelog snapshot."""

    model_config = ConfigDict(frozen=True)

    total_versions: int = 0
    total_changes: int = 0
    change_type_counts: dict[str, int] = Field(default_factory=dict)
    version_counts: dict[str, int] = Field(default_factory=dict)
    latest_version: str | None = None
    oldest_version: str | None = None
    date_range: DateRange = Field(default_factory=DateRange)


class ChangelogView(BaseModel):
    """Everything the changelog pages need: filtered data plus context."""

    changelog: ChangelogData
    stats: ChangelogStats
    versions: list[str]
    change_types: list[str]
    filter: ChangelogFilter
