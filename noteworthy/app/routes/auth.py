"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the standard response envelope: {"data": {...}, "warnings": []}

Token transport:
  - The access token is returned in the JSON body.
  - The refresh token is only ever set as an HttpOnly, SameSite=Lax cookie
    scoped to /api/v1/auth/session, so it is sent to the refresh and
    logout endpoints and nowhere else. It never appears in a body.

Endpoints (base url_prefix=/api/v1/auth):
  POST   /auth/register          → 201
  POST   /auth/login             → 200
  POST   /auth/session/refresh   → 200
  POST   /auth/session/logout    → 200
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from noteworthy.app.extensions import db
from noteworthy.app.schemas.auth_schema import LoginSchema, RegisterSchema
from noteworthy.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


def _set_refresh_cookie(response, refresh_token: str) -> None:
    config = current_app.config
    response.set_cookie(
        config["REFRESH_COOKIE_NAME"],
        refresh_token,
        max_age=int(config["JWT_REFRESH_TOKEN_EXPIRES"].total_seconds()),
        path=config["REFRESH_COOKIE_PATH"],
        secure=config["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite="Lax",
    )


def _clear_refresh_cookie(response) -> None:
    config = current_app.config
    response.delete_cookie(
        config["REFRESH_COOKIE_NAME"],
        path=config["REFRESH_COOKIE_PATH"],
        secure=config["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite="Lax",
    )


def _session_response(result: dict, status: int):
    """Moves the refresh token out of the body and into the cookie."""
    refresh_token = result.pop("refresh_token")
    response = jsonify({"data": result, "warnings": []})
    response.status_code = status
    _set_refresh_cookie(response, refresh_token)
    return response


def _refresh_cookie_value() -> str | None:
    return request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])


@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create account; start a session. (No auth required.)"""
    data = RegisterSchema().load(request.get_json(force=True) or {})
    result = auth_service.register_user(
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return _session_response(result, 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Check credentials; start a session. (No auth required.)"""
    data = LoginSchema().load(request.get_json(force=True) or {})
    result = auth_service.login_user(
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return _session_response(result, 200)


@auth_bp.route("/session/refresh", methods=["POST"])
def refresh():
    """POST /auth/session/refresh — New access token from the refresh cookie."""
    result = auth_service.refresh_session(
        raw_refresh_token=_refresh_cookie_value(),
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/session/logout", methods=["POST"])
def logout():
    """
    POST /auth/session/logout — Revoke the refresh cookie's session and
    clear the cookie. Succeeds even without a usable cookie.
    """
    auth_service.logout_user(
        raw_refresh_token=_refresh_cookie_value(),
        session=db.session,
    )
    db.session.commit()
    response = jsonify({"data": {"message": "Logged out successfully."}, "warnings": []})
    _clear_refresh_cookie(response)
    return response, 200
