"""
tests/integration/test_auth.py — Integration tests for authentication endpoints.

Endpoints covered:
  POST /auth/register         → 201
  POST /auth/login            → 200
  POST /auth/session/refresh  → 200
  POST /auth/session/logout   → 200
  GET  /users/me              → 200

Every authentication failure is a 401 UNAUTHORIZED with one fixed message;
the refresh token only ever travels in the HttpOnly cookie.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from noteworthy.app.extensions import db
from noteworthy.app.models.revoked_session import RevokedSession

from .conftest import DEFAULT_PASSWORD, auth_headers, login, register

REFRESH_URL = "/api/v1/auth/session/refresh"
LOGOUT_URL = "/api/v1/auth/session/logout"
UNAUTHORIZED = {"error": {"code": "UNAUTHORIZED", "message": "Authentication required."}}


def _refresh_set_cookie(resp) -> str:
    cookies = [c for c in resp.headers.getlist("Set-Cookie") if c.startswith("refresh_token=")]
    assert len(cookies) == 1, resp.headers.getlist("Set-Cookie")
    return cookies[0]


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/register
# ═══════════════════════════════════════════════════════════════════════════

class TestRegister:

    def test_register_success_returns_201_with_access_token(self, client):
        resp = client.post("/api/v1/auth/register", json={
            "email": "alice@test.com",
            "password": DEFAULT_PASSWORD,
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["warnings"] == []
        data = body["data"]
        assert data["access_token"]
        assert data["user"]["email"] == "alice@test.com"
        assert data["user"]["id"]
        # secrets must NEVER appear in the body
        assert "refresh_token" not in data
        assert "password" not in data["user"]
        assert "password_hash" not in data["user"]

    def test_register_sets_http_only_refresh_cookie(self, client):
        resp = client.post("/api/v1/auth/register", json={
            "email": "alice@test.com",
            "password": DEFAULT_PASSWORD,
        })
        cookie = _refresh_set_cookie(resp)
        assert "HttpOnly" in cookie
        assert "SameSite=Lax" in cookie
        assert "Path=/api/v1/auth/session" in cookie
        # testing config is not served over TLS
        assert "Secure" not in cookie

    def test_register_lowercases_email(self, client):
        data = register(client, email="Alice@Test.COM")
        assert data["user"]["email"] == "alice@test.com"

    def test_duplicate_email_is_409(self, client):
        register(client, email="alice@test.com")
        resp = client.post("/api/v1/auth/register", json={
            "email": "ALICE@test.com",
            "password": DEFAULT_PASSWORD,
        })
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "DUPLICATE_EMAIL"
        assert resp.get_json()["error"]["field"] == "email"

    def test_weak_password_is_400(self, client):
        resp = client.post("/api/v1/auth/register", json={
            "email": "alice@test.com",
            "password": "password",
        })
        assert resp.status_code == 400
        err = resp.get_json()["error"]
        assert err["code"] == "INVALID_FIELD"
        assert err["field"] == "password"

    def test_missing_email_is_400_missing_field(self, client):
        resp = client.post("/api/v1/auth/register", json={"password": DEFAULT_PASSWORD})
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "MISSING_FIELD"


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/login
# ═══════════════════════════════════════════════════════════════════════════

class TestLogin:

    def test_login_success(self, client):
        register(client, email="alice@test.com")
        resp = client.post("/api/v1/auth/login", json={
            "email": "alice@test.com",
            "password": DEFAULT_PASSWORD,
        })
        assert resp.status_code == 200
        assert resp.get_json()["data"]["access_token"]
        _refresh_set_cookie(resp)

    def test_login_is_case_insensitive_on_email(self, client):
        register(client, email="alice@test.com")
        assert login(client, "  ALICE@test.com ")["user"]["email"] == "alice@test.com"

    def test_wrong_password_and_unknown_email_look_the_same(self, client):
        register(client, email="alice@test.com")
        wrong = client.post("/api/v1/auth/login", json={
            "email": "alice@test.com", "password": "Wrong-pass1!",
        })
        unknown = client.post("/api/v1/auth/login", json={
            "email": "nobody@test.com", "password": DEFAULT_PASSWORD,
        })
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json()
        assert wrong.get_json()["error"]["code"] == "INVALID_CREDENTIALS"


# ═══════════════════════════════════════════════════════════════════════════
# Refresh / logout
# ═══════════════════════════════════════════════════════════════════════════

class TestSession:

    def test_refresh_with_cookie_returns_new_access_token(self, client):
        register(client, email="alice@test.com")

        resp = client.post(REFRESH_URL)

        assert resp.status_code == 200
        token = resp.get_json()["data"]["access_token"]
        me = client.get("/api/v1/users/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.get_json()["data"]["email"] == "alice@test.com"

    def test_refresh_without_cookie_is_401(self, client):
        resp = client.post(REFRESH_URL)
        assert resp.status_code == 401
        assert resp.get_json() == UNAUTHORIZED

    def test_refresh_ignores_token_in_body(self, app, client):
        register(client, email="alice@test.com")
        cookie_client = app.test_client()

        resp = cookie_client.post(REFRESH_URL, json={"refresh_token": "anything"})
        assert resp.status_code == 401

    def test_access_token_cannot_be_used_as_refresh_token(self, app, client):
        data = register(client, email="alice@test.com")
        other = app.test_client()
        other.set_cookie("refresh_token", data["access_token"], path="/api/v1/auth/session")

        resp = other.post(REFRESH_URL)
        assert resp.status_code == 401

    def test_logout_revokes_the_refresh_token(self, client):
        register(client, email="alice@test.com")

        resp = client.post(LOGOUT_URL)
        assert resp.status_code == 200
        cleared = _refresh_set_cookie(resp)
        assert "refresh_token=;" in cleared

    def test_revoked_refresh_token_is_rejected(self, app, client):
        resp = client.post("/api/v1/auth/register", json={
            "email": "alice@test.com", "password": DEFAULT_PASSWORD,
        })
        raw = _refresh_set_cookie(resp).split(";", 1)[0].split("=", 1)[1]

        assert client.post(LOGOUT_URL).status_code == 200

        # Replay the old cookie from a second client after logout.
        replay = app.test_client()
        replay.set_cookie("refresh_token", raw, path="/api/v1/auth/session")
        resp = replay.post(REFRESH_URL)
        assert resp.status_code == 401
        assert resp.get_json() == UNAUTHORIZED

    def test_logout_is_idempotent(self, client):
        register(client, email="alice@test.com")
        assert client.post(LOGOUT_URL).status_code == 200
        assert client.post(LOGOUT_URL).status_code == 200

    def test_logout_without_cookie_succeeds(self, client):
        assert client.post(LOGOUT_URL).status_code == 200

    def test_other_sessions_survive_logout(self, app, client):
        register(client, email="alice@test.com")
        second = app.test_client()
        login(second, "alice@test.com")

        client.post(LOGOUT_URL)

        assert second.post(REFRESH_URL).status_code == 200

    def test_logout_purges_expired_revocations(self, app, client):
        data = register(client, email="alice@test.com")
        with app.app_context():
            db.session.add(RevokedSession(
                session_id="long-gone",
                user_id=data["user"]["id"],
                expires_at=datetime.now(timezone.utc) - timedelta(days=1),
            ))
            db.session.commit()

        assert client.post(LOGOUT_URL).status_code == 200

        with app.app_context():
            remaining = db.session.execute(select(RevokedSession.session_id)).scalars().all()
        assert len(remaining) == 1
        assert "long-gone" not in remaining


# ═══════════════════════════════════════════════════════════════════════════
# GET /users/me and bearer handling
# ═══════════════════════════════════════════════════════════════════════════

class TestMe:

    def test_me_returns_profile(self, client):
        data = register(client, email="alice@test.com")
        resp = client.get("/api/v1/users/me", headers=auth_headers(data["access_token"]))
        assert resp.status_code == 200
        assert resp.get_json()["data"] == data["user"]

    def test_me_without_token(self, client):
        resp = client.get("/api/v1/users/me")
        assert resp.status_code == 401
        assert resp.get_json() == UNAUTHORIZED

    def test_me_with_garbage_token(self, client):
        resp = client.get("/api/v1/users/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401
        assert resp.get_json() == UNAUTHORIZED

    def test_me_with_non_bearer_scheme(self, client):
        data = register(client, email="alice@test.com")
        resp = client.get(
            "/api/v1/users/me",
            headers={"Authorization": f"Token {data['access_token']}"},
        )
        assert resp.status_code == 401

    def test_access_token_cookie_fallback(self, client):
        data = register(client, email="alice@test.com")
        client.set_cookie("access_token", data["access_token"])
        resp = client.get("/api/v1/users/me")
        assert resp.status_code == 200
