import json

import pytest

import mission_control
import projects
import settings
from tests.factories import make_project_payload


@pytest.fixture
def client(feed_file, monkeypatch):
    monkeypatch.setattr(settings, "PROJECTS_FILE", str(feed_file))
    monkeypatch.setattr(settings, "PROJECTS_URL", "")
    mission_control.app.config["TESTING"] = True
    return mission_control.app.test_client()


class FakeSessionProvider:
    def __init__(self):
        self.tokens = []

    def get_session(self, token):
        self.tokens.append(token)
        if token == "good":
            return {"access_token": token, "user": {"email": "a@b.c"}}
        return None


def test_api_projects_returns_raw_feed(client, project_payload):
    response = client.get("/api/projects")
    assert response.status_code == 200
    assert response.get_json() == [project_payload]


def test_api_projects_reports_broken_feed(client, feed_file):
    feed_file.write_text(json.dumps({"not": "a list"}), encoding="utf-8")
    response = client.get("/api/projects")
    assert response.status_code == 502
    assert "JSON list" in response.get_json()["error"]


def test_api_health(client, feed_file, caplog):
    assert client.get("/api/health").get_json() == {"ok": True, "projects": 1}

    feed_file.unlink()
    body = client.get("/api/health").get_json()
    assert body["ok"] is False
    assert "not found" in body["error"]
    assert "Health check could not load the project feed" in caplog.text


def test_overview_renders_from_local_file(client):
    response = client.get("/overview")
    page = response.get_data(as_text=True)

    assert response.status_code == 200
    assert page.startswith("<!DOCTYPE html>")
    assert "Focus Timer" in page
    assert "Building the widget" in page
    assert "overview-card" in page


def test_overview_with_empty_feed(client, feed_file):
    feed_file.write_text("[]", encoding="utf-8")
    page = client.get("/overview").get_data(as_text=True)
    assert "No active projects" in page
    assert "overview-card" not in page


def test_session_without_token(client):
    assert client.get("/api/session").get_json() == {"session": None}


def test_session_from_bearer_header(client, monkeypatch):
    provider = FakeSessionProvider()
    monkeypatch.setattr(mission_control, "get_identity_provider", lambda: provider)

    response = client.get("/api/session", headers={"Authorization": "Bearer good"})

    assert response.get_json()["session"]["user"]["email"] == "a@b.c"
    assert provider.tokens == ["good"]


def test_session_from_cookie(client, monkeypatch):
    provider = FakeSessionProvider()
    monkeypatch.setattr(mission_control, "get_identity_provider", lambda: provider)
    client.set_cookie(mission_control.SESSION_COOKIE, "stale")

    assert client.get("/api/session").get_json() == {"session": None}
    assert provider.tokens == ["stale"]


def test_session_with_unconfigured_provider(client, monkeypatch):
    def not_configured():
        raise RuntimeError("SUPABASE_URL is not configured")

    monkeypatch.setattr(mission_control, "get_identity_provider", not_configured)
    response = client.get("/api/session", headers={"Authorization": "Bearer good"})
    assert response.get_json() == {"session": None}


def test_auth_callback_redirects_home(client):
    response = client.get("/auth/callback")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/")


class FakeFeedResponse:
    status_code = 200

    def __init__(self, body):
        self._body = body

    def json(self):
        return self._body


@pytest.fixture
def remote_feed(client, monkeypatch):
    remote = [make_project_payload(id="remote-a", name="Remote A"), make_project_payload(id="remote-b", name="Remote B")]
    urls = []

    def fake_get(url, timeout):
        urls.append(url)
        return FakeFeedResponse(remote)

    monkeypatch.setattr(settings, "PROJECTS_URL", "https://feed.example.test/projects.json")
    monkeypatch.setattr(projects.requests, "get", fake_get)
    return remote, urls


def test_api_projects_follows_configured_url(client, remote_feed):
    remote, urls = remote_feed
    response = client.get("/api/projects")
    assert response.status_code == 200
    assert response.get_json() == remote
    assert urls == ["https://feed.example.test/projects.json"]


def test_api_health_follows_configured_url(client, remote_feed):
    assert client.get("/api/health").get_json() == {"ok": True, "projects": 2}


def test_api_projects_rejects_duplicate_ids(client, feed_file):
    feed_file.write_text(json.dumps([make_project_payload(), make_project_payload()]), encoding="utf-8")
    response = client.get("/api/projects")
    assert response.status_code == 502
    assert "Duplicate project id" in response.get_json()["error"]


def test_store_session_sets_cookie_seen_by_session_hook(client, monkeypatch):
    provider = FakeSessionProvider()
    monkeypatch.setattr(mission_control, "get_identity_provider", lambda: provider)

    response = client.post("/auth/session", json={"access_token": "good"})

    assert response.status_code == 200
    assert response.get_json()["session"]["user"]["email"] == "a@b.c"
    cookie_header = response.headers["Set-Cookie"]
    assert cookie_header.startswith(f"{mission_control.SESSION_COOKIE}=good")
    assert "HttpOnly" in cookie_header
    assert "SameSite=Lax" in cookie_header

    session = client.get("/api/session").get_json()["session"]
    assert session["user"]["email"] == "a@b.c"
    assert provider.tokens == ["good", "good"]


def test_store_session_rejects_bad_token(client, monkeypatch):
    provider = FakeSessionProvider()
    monkeypatch.setattr(mission_control, "get_identity_provider", lambda: provider)

    response = client.post("/auth/session", json={"access_token": "stale"})

    assert response.status_code == 401
    assert client.get_cookie(mission_control.SESSION_COOKIE) is None


def test_store_session_requires_token(client):
    assert client.post("/auth/session", json={}).status_code == 400
    assert client.post("/auth/session", data="nope").status_code == 400


def test_store_session_without_provider(client, monkeypatch):
    def not_configured():
        raise RuntimeError("SUPABASE_URL is not configured")

    monkeypatch.setattr(mission_control, "get_identity_provider", not_configured)
    response = client.post("/auth/session", json={"access_token": "good"})
    assert response.status_code == 503
    assert response.get_json()["error"] == "Sign-in is not configured"


def test_clear_session_drops_cookie(client, monkeypatch):
    provider = FakeSessionProvider()
    monkeypatch.setattr(mission_control, "get_identity_provider", lambda: provider)
    client.post("/auth/session", json={"access_token": "good"})

    client.delete("/auth/session")

    assert client.get_cookie(mission_control.SESSION_COOKIE) is None
    assert client.get("/api/session").get_json() == {"session": None}


def test_persist_session_script_escapes_token():
    script = mission_control.persist_session_script('tok"</script>')
    assert script.startswith("() => {")
    assert "/auth/session" in script
    assert "</script>" not in script
    assert '\\"' in script
