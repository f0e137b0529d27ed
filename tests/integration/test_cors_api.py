from __future__ import annotations

from dataclasses import replace

from upload_service import create_app

BROWSER_ORIGIN = "http://localhost:5173"


def test_preflight_for_upload_from_allowed_origin(client):
    resp = client.options(
        "/upload",
        headers={
            "Origin": BROWSER_ORIGIN,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert resp.status_code == 200
    assert resp.headers["Access-Control-Allow-Origin"] == BROWSER_ORIGIN
    assert resp.headers["Access-Control-Allow-Credentials"] == "true"
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]


def test_simple_request_carries_allow_origin(client):
    resp = client.get("/health", headers={"Origin": BROWSER_ORIGIN})
    assert resp.headers["Access-Control-Allow-Origin"] == BROWSER_ORIGIN


def test_unknown_origin_gets_no_allow_headers(client):
    resp = client.get("/health", headers={"Origin": "http://evil.test"})
    assert "Access-Control-Allow-Origin" not in resp.headers


def test_origins_come_from_settings(settings, services):
    custom = replace(settings, cors_origins=("https://videos.example.com",))
    client = create_app(custom, services=services).test_client()

    allowed = client.get("/health", headers={"Origin": "https://videos.example.com"})
    assert allowed.headers["Access-Control-Allow-Origin"] == "https://videos.example.com"
    other = client.get("/health", headers={"Origin": BROWSER_ORIGIN})
    assert "Access-Control-Allow-Origin" not in other.headers
