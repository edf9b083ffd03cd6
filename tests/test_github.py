from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from src.sheets.api.main import app
from src.sheets.api.routers import github as gh
from src.sheets.infrastructure.kv_store import get_kv_store
from src.sheets.security.auth import issue_oauth_state, lookup_session
from src.sheets.security.github_oauth import TOKEN_URL, GitHubOAuthClient, session_record
from tests.utils import FakeResponse, FakeSession, login


client = TestClient(app)


def _fake_github(monkeypatch, token_response=None, user=None, repos=None):
    session = FakeSession(
        get={
            "https://api.github.com/user": FakeResponse(json_data=user or {"id": 583231, "login": "octocat"}),
            "https://api.github.com/user/repos": FakeResponse(json_data=repos or []),
        },
        post={TOKEN_URL: token_response or FakeResponse(json_data={"access_token": "gho_abc"})},
    )
    monkeypatch.setattr(gh, "GitHubOAuthClient", lambda: GitHubOAuthClient(session=session))
    return session


def _query(location):
    return {k: v[0] for k, v in parse_qs(urlparse(location).query).items()}


def test_auth_url_carries_client_and_state():
    r = client.get("/api/github/auth")
    assert r.status_code == 200
    url = r.json()["authUrl"]
    assert url.startswith("https://github.com/login/oauth/authorize?")
    q = _query(url)
    assert q["client_id"] == "client-123"
    assert q["redirect_uri"] == "http://app.test/api/github/callback"
    assert q["scope"] == "repo,user"
    assert get_kv_store().get(f"oauth:{q['state']}") is not None


def test_callback_rejects_unknown_state(monkeypatch):
    session = _fake_github(monkeypatch)

    r = client.get("/api/github/callback", params={"code": "c", "state": "forged"}, follow_redirects=False)

    assert r.status_code == 302
    assert r.headers["location"] == "http://app.test?error=invalid_state"
    assert session.calls == []


def test_callback_success_creates_session(monkeypatch):
    _fake_github(monkeypatch)
    state = issue_oauth_state(get_kv_store())

    r = client.get("/api/github/callback", params={"code": "c", "state": state}, follow_redirects=False)

    assert r.status_code == 302
    token = _query(r.headers["location"])["token"]
    user = lookup_session(get_kv_store(), token)
    assert user.id == "583231"
    assert user.login == "octocat"
    assert user.github_token == "gho_abc"


def test_state_is_single_use(monkeypatch):
    _fake_github(monkeypatch)
    state = issue_oauth_state(get_kv_store())
    client.get("/api/github/callback", params={"code": "c", "state": state}, follow_redirects=False)

    again = client.get("/api/github/callback", params={"code": "c", "state": state}, follow_redirects=False)

    assert _query(again.headers["location"]) == {"error": "invalid_state"}


def test_refused_exchange_redirects_with_error(monkeypatch):
    _fake_github(monkeypatch, token_response=FakeResponse(json_data={"error": "bad_verification_code"}))
    state = issue_oauth_state(get_kv_store())

    r = client.get("/api/github/callback", params={"code": "c", "state": state}, follow_redirects=False)

    assert _query(r.headers["location"]) == {"error": "oauth_failed"}


def test_user_endpoint_hides_github_token():
    r = client.get("/api/github/user", headers=login())
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["login"] == "octocat"
    assert "githubToken" not in user
    assert "github_token" not in user


def test_user_endpoint_requires_session():
    assert client.get("/api/github/user").status_code == 401


def test_repos_use_session_token(monkeypatch):
    session = _fake_github(monkeypatch, repos=[{"full_name": "octocat/hello"}])

    r = client.get("/api/github/repos", headers=login())

    assert r.json() == {"repos": [{"full_name": "octocat/hello"}]}
    _, _, kwargs = session.calls[0]
    assert kwargs["headers"]["Authorization"] == "token gh-token"


def test_logout_revokes_session():
    headers = login()
    assert client.post("/api/github/logout", headers=headers).json() == {"success": True}
    assert client.get("/api/github/user", headers=headers).status_code == 401


def test_session_record_stringifies_id():
    record = session_record({"id": 7, "login": "x", "avatar_url": "http://a"}, "tok")
    assert record == {"id": "7", "login": "x", "name": None, "avatar": "http://a", "githubToken": "tok"}


def test_non_json_token_response_redirects_with_error(monkeypatch):
    _fake_github(monkeypatch, token_response=FakeResponse(status_code=200, text="<html>maintenance</html>"))
    state = issue_oauth_state(get_kv_store())

    r = client.get("/api/github/callback", params={"code": "c", "state": state}, follow_redirects=False)

    assert r.status_code == 302
    assert _query(r.headers["location"]) == {"error": "oauth_failed"}


def test_list_shaped_token_response_redirects_with_error(monkeypatch):
    _fake_github(monkeypatch, token_response=FakeResponse(json_data=["unexpected"]))
    state = issue_oauth_state(get_kv_store())

    r = client.get("/api/github/callback", params={"code": "c", "state": state}, follow_redirects=False)

    assert _query(r.headers["location"]) == {"error": "oauth_failed"}


def test_non_json_user_response_redirects_with_error(monkeypatch):
    session = _fake_github(monkeypatch)
    session.get_routes["https://api.github.com/user"] = FakeResponse(status_code=200, text="oops")
    state = issue_oauth_state(get_kv_store())

    r = client.get("/api/github/callback", params={"code": "c", "state": state}, follow_redirects=False)

    assert _query(r.headers["location"]) == {"error": "oauth_failed"}


def test_malformed_repo_list_is_bad_gateway(monkeypatch):
    session = _fake_github(monkeypatch)
    session.get_routes["https://api.github.com/user/repos"] = FakeResponse(json_data={"message": "odd"})

    r = client.get("/api/github/repos", headers=login())

    assert r.status_code == 502
    assert "error" in r.json()
