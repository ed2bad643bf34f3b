"""Route tests for pages, changelog outputs and per-visitor rate limiting."""

from pathlib import Path
from xml.etree import ElementTree as ET

import pytest
from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.core.config import settings
from app.core.rate_limit import get_rate_limiter, retry_after_seconds, should_skip_rate_limit


class TestPages:
    @pytest.mark.parametrize(
        ("path", "title"),
        [
            ("/", "Home"),
            ("/resume", "Resume"),
            ("/projects", "Projects"),
            ("/sitemap", "Sitemap"),
            ("/changelog", "Changelog"),
        ],
    )
    def test_html_pages_render(self, client: TestClient, path: str, title: str):
        resp = client.get(path)

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert f"<title>{title} | " in resp.text

    def test_sitemap_xml(self, client: TestClient):
        resp = client.get("/sitemap.xml")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/xml")
        assert f"<loc>{settings.site.base_url}/changelog</loc>" in resp.text

    def test_ratelimit_page_is_served_with_429(self, client: TestClient):
        resp = client.get("/ratelimit")

        assert resp.status_code == 429
        assert "Rate Limit Exceeded" in resp.text

    def test_health(self, client: TestClient):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "service": "personal-website"}

    def test_static_files_are_served(self, client: TestClient):
        resp = client.get("/static/css/site.css")

        assert resp.status_code == 200
        assert "X-RateLimit-Limit" not in resp.headers

    def test_ratelimit_page_matches_retry_after_header(
        self, changelog_file: Path, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(settings.app, "rate_limit_burst_size", 0)
        monkeypatch.setattr(settings.app, "rate_limit_window_seconds", 1.5)

        with TestClient(create_app()) as test_client:
            throttled = test_client.get("/")
            page = test_client.get("/ratelimit")

        assert throttled.status_code == 429
        assert throttled.headers["Retry-After"] == "2"
        assert "Please wait 2 seconds" in throttled.text
        assert "Please wait 2 seconds" in page.text


class TestChangelogRoutes:
    def test_html_page_lists_entries(self, client: TestClient):
        resp = client.get("/changelog")

        assert resp.status_code == 200
        assert "New thing" in resp.text
        assert "Broken link on home page" in resp.text

    def test_html_page_applies_filter(self, client: TestClient):
        resp = client.get("/changelog", params={"type": "Changed"})

        assert resp.status_code == 200
        assert "Updated dependencies" in resp.text
        assert "Initial release" not in resp.text

    def test_json_payload(self, client: TestClient):
        resp = client.get("/changelog.json")

        assert resp.status_code == 200
        body = resp.json()
        assert body["changelog"]["total"] == 4
        assert [e["version"] for e in body["changelog"]["entries"]] == [
            "Unreleased",
            "1.2.0",
            "1.1.0",
            "1.0.0",
        ]
        assert body["stats"]["date_range"] == {"from": "2023-06-01", "to": "2024-01-15"}
        assert body["change_types"] == ["Added", "Changed", "Fixed"]
        assert body["filter"]["show_unreleased"] is True

    def test_json_query_parameters(self, client: TestClient):
        resp = client.get(
            "/changelog.json",
            params={"unreleased": "false", "search": "THING", "date_from": "2024-01-01"},
        )

        body = resp.json()
        assert [e["version"] for e in body["changelog"]["entries"]] == ["1.2.0"]
        assert body["changelog"]["entries"][0]["changes"][0]["items"] == ["New thing", "plain thing"]
        # Stats describe the whole document, not the filtered view.
        assert body["stats"]["total_versions"] == 4

    def test_json_ignores_bad_dates(self, client: TestClient):
        resp = client.get("/changelog.json", params={"date_to": "yesterday"})

        assert resp.status_code == 200
        assert resp.json()["changelog"]["total"] == 4

    def test_rss(self, client: TestClient):
        resp = client.get("/changelog.rss")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/rss+xml")
        items = ET.fromstring(resp.content).findall("channel/item")
        assert len(items) == 4

    def test_markdown_raw(self, client: TestClient, changelog_file: Path):
        resp = client.get("/changelog.md")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/markdown")
        assert resp.text == changelog_file.read_text(encoding="utf-8")

    def test_markdown_as_html(self, client: TestClient):
        resp = client.get("/changelog.md", params={"format": "html"})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "<h2>[1.2.0] - 2024-01-15</h2>" in resp.text
        assert "<strong>New</strong>" in resp.text

    def test_markdown_as_html_keeps_spaces_between_inline_markup(
        self, client: TestClient, changelog_file: Path
    ):
        changelog_file.write_text("## [1.0.0]\n### Added\n- **Fast** *parser*\n", encoding="utf-8")

        resp = client.get("/changelog.md", params={"format": "html"})

        assert "<strong>Fast</strong> <em>parser</em>" in resp.text

    def test_missing_source_returns_404(self, client: TestClient, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(settings.app, "changelog_path", tmp_path / "gone.md")

        resp = client.get("/changelog.json")

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "changelog_not_found"

    def test_undecodable_source_returns_500(self, client: TestClient, tmp_path: Path, monkeypatch):
        path = tmp_path / "binary.md"
        path.write_bytes(b"## [1.0.0]\n\xff\xfe")
        monkeypatch.setattr(settings.app, "changelog_path", path)

        resp = client.get("/changelog.rss")

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "changelog_undecodable"


@pytest.fixture
def limited_client(changelog_file: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings.app, "rate_limit_burst_size", 2)
    monkeypatch.setattr(settings.app, "rate_limit_window_seconds", 60.0)
    app = create_app()
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


class TestRateLimiting:
    def test_first_visit_sets_visitor_cookie(self, limited_client: TestClient):
        resp = limited_client.get("/")

        assert resp.status_code == 200
        cookie = resp.headers["set-cookie"]
        assert cookie.startswith(f"{settings.app.visitor_cookie_name}=")
        assert "HttpOnly" in cookie
        assert resp.headers["X-RateLimit-Limit"] == "2"
        assert resp.headers["X-RateLimit-Remaining"] == "1"

    def test_exceeding_burst_returns_429_page(self, limited_client: TestClient):
        assert limited_client.get("/").status_code == 200
        assert limited_client.get("/resume").status_code == 200

        resp = limited_client.get("/projects")

        assert resp.status_code == 429
        assert "Rate Limit Exceeded" in resp.text
        assert resp.headers["Retry-After"] == "60"
        assert resp.headers["X-RateLimit-Remaining"] == "0"
        assert resp.headers["X-RateLimit-Limit"] == "2"

    def test_visitors_are_limited_independently(self, limited_client: TestClient):
        cookie_name = settings.app.visitor_cookie_name
        visitor_a = {"Cookie": f"{cookie_name}=visitor-a"}
        visitor_b = {"Cookie": f"{cookie_name}=visitor-b"}

        for _ in range(2):
            assert limited_client.get("/", headers=visitor_a).status_code == 200
        assert limited_client.get("/", headers=visitor_a).status_code == 429

        resp = limited_client.get("/", headers=visitor_b)
        assert resp.status_code == 200
        # Known visitors are not re-issued a cookie.
        assert "set-cookie" not in resp.headers

    def test_exempt_paths_are_not_counted(self, limited_client: TestClient):
        for _ in range(5):
            assert limited_client.get("/health").status_code == 200

        assert limited_client.get("/").status_code == 200

    def test_lifespan_shuts_down_limiter(self, changelog_file: Path):
        app = create_app()
        with TestClient(app):
            limiter = get_rate_limiter(app)
            assert limiter is not None
            sweeper = limiter._sweeper
            assert sweeper is not None and sweeper.is_alive()

        assert not sweeper.is_alive()

    def test_disabled_rate_limiting(self, changelog_file: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(settings.app, "rate_limit_enabled", False)
        monkeypatch.setattr(settings.app, "rate_limit_burst_size", 0)
        app = create_app()

        with TestClient(app) as test_client:
            resp = test_client.get("/")

        assert get_rate_limiter(app) is None
        assert resp.status_code == 200
        assert "X-RateLimit-Limit" not in resp.headers


@pytest.mark.parametrize(
    ("path", "skipped"),
    [
        ("/static/css/site.css", True),
        ("/health", True),
        ("/ratelimit", True),
        ("/robots.txt", True),
        ("/", False),
        ("/changelog.json", False),
    ],
)
def test_should_skip_rate_limit(path: str, skipped: bool):
    assert should_skip_rate_limit(path) is skipped


@pytest.mark.parametrize(("window", "expected"), [(15.0, 15), (1.5, 2), (0.2, 1), (0.0, 0)])
def test_retry_after_seconds_rounds_up(window: float, expected: int):
    assert retry_after_seconds(window) == expected
