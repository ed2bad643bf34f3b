from __future__ import annotations

from fastapi.testclient import TestClient


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_security_headers_are_applied(client: TestClient):
    resp = client.get("/health")

    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert "max-age=63072000" in resp.headers["Strict-Transport-Security"]


def test_html_responses_are_minified(client: TestClient):
    resp = client.get("/")

    assert resp.status_code == 200
    assert "<!--" not in resp.text
    assert int(resp.headers["content-length"]) == len(resp.content)


def test_minification_can_be_disabled(client: TestClient, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings.app, "minify_html", False)

    resp = client.get("/")

    assert "<!-- navigation -->" in resp.text


def test_minification_keeps_spaces_between_nav_links(client: TestClient):
    resp = client.get("/")

    assert '>Home</a> <a href="/resume"' in resp.text
