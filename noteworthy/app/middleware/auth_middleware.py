"""
middleware/auth_middleware.py — Access-token authentication decorators.

@require_auth
  1. Takes the token from "Authorization: Bearer <token>", or from the
     access-token cookie when no header is sent
  2. Verifies it with session_service.verify_access_token()
  3. Sets flask.g.identity (Identity) and flask.g.user_id for the request
  4. Raises AuthError on any failure

@optional_auth
  Same, except that a request with no token at all proceeds with
  g.identity = None (anonymous reads of public notes). A token that is
  present but invalid is still rejected.

Responsibility boundary:
  - Authentication only (401). Whether the caller may touch a given note or
    folder is decided by access_service in the service layer.
  - Identity comes from the verified token and nothing else. Headers such
    as `user` or `x-user-id` are never read.

Every failure reaches the client as the same 401 UNAUTHORIZED body; the
specific AuthFailure reason is written to the log here.
"""

from __future__ import annotations

import functools
from typing import Callable

from flask import current_app, g, request

from noteworthy.app.errors import AuthError, AuthFailure
from noteworthy.app.services import session_service
from noteworthy.app.services.session_service import Identity, TokenSettings


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces access-token authentication.

    Usage:
        @notes_bp.route("", methods=["POST"])
        @require_auth
        def create_note():
            identity = g.identity  # always an Identity when this runs
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request(required=True)
        return f(*args, **kwargs)

    return decorated


def optional_auth(f: Callable) -> Callable:
    """Like require_auth, but anonymous requests get g.identity = None."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request(required=False)
        return f(*args, **kwargs)

    return decorated


def _authenticate_request(required: bool) -> Identity | None:
    """
    Resolves the request's identity and stores it on flask.g.

    Separated from the decorators so tests can call it inside a
    test_request_context without wrapping a view.
    """
    settings = TokenSettings.from_config(current_app.config)  # ConfigurationError -> 500

    header = request.headers.get("Authorization")
    cookie = request.cookies.get(current_app.config.get("ACCESS_COOKIE_NAME", "access_token"))

    try:
        token = session_service.extract_bearer_token(header, cookie)
        identity = session_service.verify_access_token(token, settings)
    except AuthError as exc:
        if exc.reason is AuthFailure.MISSING_TOKEN and not required:
            g.identity = None
            g.user_id = None
            return None
        current_app.logger.warning(
            "Authentication failed (%s) for %s %s",
            exc.reason.value, request.method, request.path,
        )
        raise

    g.identity = identity
    g.user_id = identity.user_id
    return identity
