"""
services/auth_service.py — Account and session flows.

Responsibilities:
  - Registration and credential checks (bcrypt)
  - Issuing a session on register/login (session_service.issue_session)
  - Refresh: new access token from a valid, non-revoked refresh token
  - Logout: record the refresh token's session id in revoked_sessions
  - Current-user profile lookup

Layer rules:
  - No imports from routes or schemas.
  - No flask.request or flask.g. current_app.config is read for the token
    settings and the bcrypt cost only; both are deployment configuration.
  - Commits are the route's job; only flush here.

Unknown email and wrong password produce the same INVALID_CREDENTIALS
error. Passwords, hashes and tokens are never logged; emails are masked.
"""

from __future__ import annotations

import logging

import bcrypt
from flask import current_app
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from noteworthy.app.errors import AppError, AuthError, AuthFailure, ErrorCode
from noteworthy.app.helpers import isoformat, mask_email, utcnow
from noteworthy.app.models.revoked_session import RevokedSession
from noteworthy.app.models.user import User
from noteworthy.app.services import session_service
from noteworthy.app.services.session_service import TokenSettings

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _token_settings() -> TokenSettings:
    """Raises ConfigurationError if the signing secrets are unusable."""
    return TokenSettings.from_config(current_app.config)


def _hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def _build_user_dict(user: User) -> dict:
    """Serialises a User to a plain dict. Never includes the password hash."""
    return {
        "id": user.id,
        "email": user.email,
        "created_at": isoformat(user.created_at),
    }


def _normalise_email(email: str) -> str:
    return email.strip().lower()


def is_session_revoked(session_id: str, session: Session) -> bool:
    return session.execute(
        select(RevokedSession.id).where(RevokedSession.session_id == session_id)
    ).first() is not None


# ── Public service functions ───────────────────────────────────────────────

def register_user(email: str, password: str, session: Session) -> dict:
    """
    Creates an account and issues a session.

    Raises:
      AppError(DUPLICATE_EMAIL, 409) — email already registered

    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    settings = _token_settings()
    email = _normalise_email(email)

    existing = session.execute(
        select(User.id).where(User.email == email)
    ).first()
    if existing is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            "An account with this email address already exists.",
            409,
            field="email",
        )

    user = User(email=email, password_hash=_hash_password(password))
    session.add(user)
    session.flush()  # populate user.id before signing tokens

    logger.info("Registered user %s (%s)", user.id, mask_email(email))
    return {
        "user": _build_user_dict(user),
        **session_service.issue_session(user.id, user.email, settings),
    }


def login_user(email: str, password: str, session: Session) -> dict:
    """
    Checks credentials and issues a session.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — unknown email or wrong password

    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    settings = _token_settings()
    email = _normalise_email(email)

    user = session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()

    if user is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        logger.warning("Failed login for %s", mask_email(email))
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The email or password is incorrect.",
            401,
        )

    logger.info("User %s logged in", user.id)
    return {
        "user": _build_user_dict(user),
        **session_service.issue_session(user.id, user.email, settings),
    }


def refresh_session(raw_refresh_token: str | None, session: Session) -> dict:
    """
    Issues a new access token. The refresh token is not rotated.

    Raises:
      AuthError (401) — missing, invalid, expired or revoked refresh token,
                        or the user no longer exists

    Returns: {"access_token": "..."}
    """
    settings = _token_settings()
    claims = session_service.verify_refresh_token(
        raw_refresh_token,
        settings,
        is_revoked=lambda sid: is_session_revoked(sid, session),
    )

    user = session.get(User, claims.user_id)
    if user is None:
        raise AuthError(AuthFailure.INVALID_PAYLOAD)

    return {
        "access_token": session_service.issue_access_token(user.id, user.email, settings),
    }


def logout_user(raw_refresh_token: str | None, session: Session) -> bool:
    """
    Revokes the refresh token's session. Idempotent: a missing, invalid or
    already revoked token is not an error, the caller is logged out either way.

    Returns True if a session was revoked by this call.
    """
    settings = _token_settings()
    try:
        claims = session_service.verify_refresh_token(
            raw_refresh_token,
            settings,
            is_revoked=lambda sid: is_session_revoked(sid, session),
        )
    except AuthError as exc:
        logger.info("Logout without a usable refresh token (%s)", exc.reason.value)
        return False

    purge_expired_revocations(session)

    # A concurrent logout with the same cookie may insert the sid first.
    try:
        with session.begin_nested():
            session.add(RevokedSession(
                session_id=claims.session_id,
                user_id=claims.user_id,
                expires_at=claims.expires_at,
            ))
    except IntegrityError:
        logger.info("Session of user %s was already revoked", claims.user_id)
        return False

    logger.info("User %s logged out", claims.user_id)
    return True


def purge_expired_revocations(session: Session) -> int:
    """
    Deletes denylist rows whose refresh token has expired on its own; an
    expired token is rejected before the denylist is consulted.
    """
    result = session.execute(
        delete(RevokedSession).where(RevokedSession.expires_at < utcnow())
    )
    if result.rowcount:
        logger.info("Purged %d expired session revocations", result.rowcount)
    return result.rowcount


def get_current_user(user_id: str, session: Session) -> dict:
    """
    Raises:
      AppError(USER_NOT_FOUND, 404) — the token's user has since been deleted
    """
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )
    return _build_user_dict(user)
