"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
  - Tests run against in-memory SQLite by default; set TEST_DATABASE_URL to
    a PostgreSQL database to run the same suite there.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)      → {"user": {...}, "access_token": "..."}
  - login(client, ...)         → {"user": {...}, "access_token": "..."}
  - auth_headers(token)        → {"Authorization": "Bearer <token>"}
  - make_folder(client, ...)   → folder dict
  - make_note(client, ...)     → note dict
  - grant(client, ...)         → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from noteworthy.app import create_app
from noteworthy.app.extensions import db as _db

DEFAULT_PASSWORD = "Password1!"


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once for the whole run."""
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test.

    Folders reference each other, so parent links are cleared before the
    folder rows go.
    """
    yield

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM revoked_sessions"))
            conn.execute(text("DELETE FROM invitations"))
            conn.execute(text("DELETE FROM permissions"))
            conn.execute(text("DELETE FROM notes"))
            conn.execute(text("UPDATE folders SET parent_folder_id = NULL"))
            conn.execute(text("DELETE FROM folders"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (and cookie jar)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(client, email: str = "alice@test.com", password: str = DEFAULT_PASSWORD) -> dict:
    """
    Registers a new user and returns the response data dict.
    The refresh token lands in the client's cookie jar, not in the result.
    """
    resp = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password},
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    resp = client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def make_folder(client, token: str, name: str = "Work", parent_id: str | None = None) -> dict:
    resp = client.post(
        "/api/v1/folders",
        json={"name": name, "parent_id": parent_id},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_folder failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_note(
    client,
    token: str,
    title: str = "Note",
    content_markdown: str = "",
    folder_id: str | None = None,
) -> dict:
    resp = client.post(
        "/api/v1/notes",
        json={"title": title, "content_markdown": content_markdown, "folder_id": folder_id},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_note failed: {resp.get_json()}"
    return resp.get_json()["data"]


def grant(client, token: str, user_id: str, entity_type: str, entity_id: str, access_level: str = "view"):
    """Grants access as the token's user. Returns the HTTP response."""
    return client.post(
        "/api/v1/permissions",
        json={
            "user_id": user_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "access_level": access_level,
        },
        headers=auth_headers(token),
    )


def set_public(client, token: str, kind: str, resource_id: str, is_public: bool = True):
    """kind is "notes" or "folders". Returns the HTTP response."""
    return client.put(
        f"/api/v1/{kind}/{resource_id}/public",
        json={"is_public": is_public},
        headers=auth_headers(token),
    )
