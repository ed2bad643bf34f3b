"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment to ``testing`` before the settings module is
imported, so no developer .env file leaks into the test run.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("APP_RATE_LIMIT_BURST_SIZE", "1000")

from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.app_factory import create_app  # noqa: E402
from app.core.config import settings  # noqa: E402


SAMPLE_CHANGELOG = """# Changelog

Intro text that is not part of any version.

## [Unreleased]

### Added
- Work in progress feature

## [1.2.0] - 2024-01-15

### Added
- **New** thing
- plain thing

### Fixed
- Broken `link` on *home* page

## [1.1.0] - 2023-06-01

### Changed
- Updated dependencies

## [1.0.0]

### Added
- Initial release
"""


@pytest.fixture
def sample_changelog() -> str:
    return SAMPLE_CHANGELOG


@pytest.fixture
def changelog_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Write the sample changelog to disk and point the app at it."""
    path = tmp_path / "CHANGELOG.md"
    path.write_text(SAMPLE_CHANGELOG, encoding="utf-8")
    monkeypatch.setattr(settings.app, "changelog_path", path)
    return path


@pytest.fixture
def client(changelog_file: Path):
    """Test client for a fresh app; the lifespan stops its rate limiter."""
    with TestClient(create_app()) as test_client:
        yield test_client
