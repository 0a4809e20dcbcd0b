"""
services/session_service.py — Session issuance and verification.

Responsibilities:
  - TokenSettings: the two signing secrets, TTLs and algorithm, read from
    app config. Missing or identical secrets raise ConfigurationError.
  - issue_session(): mint an access token (short TTL) and a refresh token
    (long TTL) with two independent codec calls and two distinct secrets.
  - verify_access_token(): bearer string -> Identity, or AuthError(reason).
  - verify_refresh_token(): refresh cookie -> RefreshClaims, or AuthError,
    consulting an injected revocation lookup.
  - extract_bearer_token(): Authorization header / cookie parsing.

Layer rules:
  - No Flask imports, no database access. Revocation lookups are passed in
    as a callable by auth_service.
  - Nothing here logs token values.

Token formats:
  access  : {user_id, email, iat, exp}
  refresh : {user_id, sid, iat, exp}   — email intentionally omitted;
            sid is a random session id used only by the logout denylist.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

from noteworthy.app.errors import AuthError, AuthFailure, ConfigurationError
from noteworthy.app.services import token_codec


@dataclass(frozen=True)
class Identity:
    """The authenticated principal. Only ever built from a verified token."""
    user_id: str
    email: str


@dataclass(frozen=True)
class RefreshClaims:
    user_id: str
    session_id: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenSettings:
    access_secret: str
    refresh_secret: str
    access_ttl: timedelta
    refresh_ttl: timedelta
    algorithm: str = token_codec.DEFAULT_ALGORITHM

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TokenSettings":
        """
        Builds settings from a Flask config mapping.

        Raises ConfigurationError (a deployment error, reported as a generic
        500) if a secret is missing or both secrets are the same value.
        """
        access_secret = config.get("JWT_SECRET_KEY")
        refresh_secret = config.get("JWT_REFRESH_SECRET_KEY")

        if not access_secret or not refresh_secret:
            raise ConfigurationError(
                "JWT_SECRET_KEY and JWT_REFRESH_SECRET_KEY must both be configured."
            )
        if access_secret == refresh_secret:
            raise ConfigurationError(
                "JWT_SECRET_KEY and JWT_REFRESH_SECRET_KEY must differ."
            )

        return cls(
            access_secret=access_secret,
            refresh_secret=refresh_secret,
            access_ttl=config.get("JWT_ACCESS_TOKEN_EXPIRES", timedelta(minutes=15)),
            refresh_ttl=config.get("JWT_REFRESH_TOKEN_EXPIRES", timedelta(days=7)),
            algorithm=config.get("JWT_ALGORITHM", token_codec.DEFAULT_ALGORITHM),
        )


# ── Issuance ───────────────────────────────────────────────────────────────

def issue_access_token(
        user_id: str,
        email: str,
        settings: TokenSettings,
        now: datetime | None = None,
) -> str:
    return token_codec.encode(
        {"user_id": user_id, "email": email},
        settings.access_secret,
        settings.access_ttl,
        now=now,
        algorithm=settings.algorithm,
    )


def issue_refresh_token(
        user_id: str,
        settings: TokenSettings,
        now: datetime | None = None,
        session_id: str | None = None,
) -> str:
    return token_codec.encode(
        {"user_id": user_id, "sid": session_id or secrets.token_hex(16)},
        settings.refresh_secret,
        settings.refresh_ttl,
        now=now,
        algorithm=settings.algorithm,
    )


def issue_session(
        user_id: str,
        email: str,
        settings: TokenSettings,
        now: datetime | None = None,
) -> dict:
    """
    Returns {"access_token": ..., "refresh_token": ...} for a user whose
    credentials have already been checked.

    The refresh token is not rotated on refresh; it lives until it expires
    or is revoked on logout.
    """
    return {
        "access_token": issue_access_token(user_id, email, settings, now=now),
        "refresh_token": issue_refresh_token(user_id, settings, now=now),
    }


# ── Verification ───────────────────────────────────────────────────────────

def _decode_or_fail(token: str, secret: str, algorithm: str) -> dict:
    try:
        return token_codec.decode(token, secret, algorithm=algorithm)
    except token_codec.TokenExpired:
        raise AuthError(AuthFailure.EXPIRED)
    except token_codec.TokenSignatureInvalid:
        raise AuthError(AuthFailure.INVALID_SIGNATURE)
    except token_codec.TokenMalformed:
        raise AuthError(AuthFailure.MALFORMED)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def verify_access_token(token: str | None, settings: TokenSettings) -> Identity:
    """
    Resolves a bearer token to an Identity.

    Raises AuthError with reason:
      MISSING_TOKEN      no token supplied
      MALFORMED          not a decodable JWT / required claims missing
      EXPIRED            exp has passed
      INVALID_SIGNATURE  signed with another secret, or tampered
      INVALID_PAYLOAD    correctly signed but user_id/email missing — a token
                         of another format, not a forgery
    """
    if not token:
        raise AuthError(AuthFailure.MISSING_TOKEN)

    claims = _decode_or_fail(token, settings.access_secret, settings.algorithm)

    user_id = claims.get("user_id")
    email = claims.get("email")
    if not _non_empty_str(user_id) or not _non_empty_str(email):
        raise AuthError(AuthFailure.INVALID_PAYLOAD)

    return Identity(user_id=user_id, email=email)


def verify_refresh_token(
        token: str | None,
        settings: TokenSettings,
        is_revoked: Callable[[str], bool] | None = None,
) -> RefreshClaims:
    """
    Resolves a refresh token to its claims.

    Same failure reasons as verify_access_token(), plus REVOKED when
    `is_revoked(sid)` reports the session was logged out.
    """
    if not token:
        raise AuthError(AuthFailure.MISSING_TOKEN)

    claims = _decode_or_fail(token, settings.refresh_secret, settings.algorithm)

    user_id = claims.get("user_id")
    session_id = claims.get("sid")
    if not _non_empty_str(user_id) or not _non_empty_str(session_id):
        raise AuthError(AuthFailure.INVALID_PAYLOAD)

    if is_revoked is not None and is_revoked(session_id):
        raise AuthError(AuthFailure.REVOKED)

    return RefreshClaims(
        user_id=user_id,
        session_id=session_id,
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )


def extract_bearer_token(
        authorization_header: str | None,
        cookie_token: str | None = None,
) -> str:
    """
    Returns the raw access token from "Authorization: Bearer <token>", or
    from the access-token cookie when no header is sent.

    A header that is present but not in Bearer form is MALFORMED; it does
    not fall back to the cookie.
    """
    if authorization_header:
        parts = authorization_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise AuthError(AuthFailure.MALFORMED)
        return parts[1]

    if cookie_token:
        return cookie_token

    raise AuthError(AuthFailure.MISSING_TOKEN)
