import asyncio
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app import APP_VERSION, app, get_client
from auth.token_exchange import oauth_settings
from config import get_settings


@pytest.fixture
def http(fake_client, settings):
    app.dependency_overrides[get_client] = lambda: fake_client
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[oauth_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(http):
    resp = http.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "name": "wf-processing", "version": APP_VERSION}


def test_get_renders_dashboard(http):
    resp = http.get("/", params={"success": "note_created"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert "Note Created Successfully" in resp.text
    assert "No results found" in resp.text


def test_post_redirects_with_success(http, fake_client):
    resp = http.post(
        "/",
        data={"action": "create_note", "transactionId": "501", "noteText": "Called customer"},
        follow_redirects=False,
    )

    assert resp.status_code == 303
    assert resp.headers["location"] == "/?success=note_created"
    assert fake_client.created[0][1]["note"] == "Called customer"


def test_post_redirects_with_error(http, fake_client):
    resp = http.post("/", data={"action": "create_note", "transactionId": "501"}, follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/?error=Error+processing+request")
    assert fake_client.created == []


def test_post_then_follow_shows_banner(http):
    resp = http.post("/", data={"action": "nope"})

    assert resp.status_code == 200
    assert "Unknown action: nope" in resp.text


def test_oauth_callback_missing_code(http):
    resp = http.get("/oauth/callback", params={"state": "xyz"})

    assert resp.json() == {
        "ok": False,
        "error": "missing_code",
        "state": "xyz",
        "query": {"state": "xyz"},
    }


def test_oauth_callback_exchanges_code(http, settings):
    with patch("app.exchange_auth_code_for_tokens", return_value={"refresh_token": "r"}) as exchange:
        resp = http.get("/oauth/callback", params={"code": "abc", "state": "s"})

    exchange.assert_called_once_with("abc", settings)
    assert resp.json() == {"ok": True, "state": "s", "token_response": {"refresh_token": "r"}}


def test_oauth_callback_reports_failure(http):
    with patch("app.exchange_auth_code_for_tokens", side_effect=RuntimeError("Token exchange failed: HTTP 400 - bad")):
        resp = http.get("/oauth/callback", params={"code": "abc"})

    assert resp.json()["ok"] is False
    assert "HTTP 400" in resp.json()["error"]


def test_post_action_runs_off_the_event_loop(http):
    seen = {}

    def fake_handle_post(client, settings, params):
        try:
            asyncio.get_running_loop()
            seen["on_loop"] = True
        except RuntimeError:
            seen["on_loop"] = False
        return {"success": "note_created"}

    with patch("app.handle_post", side_effect=fake_handle_post):
        resp = http.post("/", data={"action": "create_note"}, follow_redirects=False)

    assert resp.status_code == 303
    assert seen == {"on_loop": False}
