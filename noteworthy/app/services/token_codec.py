"""
services/token_codec.py — Signed, expiring claim tokens (JWT, HS256).

Pure functions, no I/O, no Flask.

  encode(claims, secret, ttl, now=None) -> token
  decode(token, secret)                  -> claims   (or TokenDecodeError)

encode() adds integer `iat` and `exp` claims to a copy of `claims`. With the
same claims, secret and `now` it always returns the same string.

decode() lets PyJWT verify the signature before anything in the payload is
looked at; only then are `exp` and `iat` checked. PyJWT failures are mapped
onto three outcomes:

  TokenExpired           signature fine, `exp` in the past
  TokenSignatureInvalid  wrong secret, tampered token, or disallowed `alg`
  TokenMalformed         not a JWT, unreadable payload, missing/odd exp/iat

Anything else PyJWT raises (e.g. an unusable key) is not a token problem and
propagates unchanged.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import jwt

DEFAULT_ALGORITHM = "HS256"

_REQUIRED_CLAIMS = ["exp", "iat"]


class TokenDecodeError(Exception):
    """Base class for every decode() failure."""


class TokenExpired(TokenDecodeError):
    pass


class TokenMalformed(TokenDecodeError):
    pass


class TokenSignatureInvalid(TokenDecodeError):
    pass


def encode(
        claims: Mapping[str, Any],
        secret: str,
        ttl: timedelta,
        now: datetime | None = None,
        algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    """Signs `claims` plus iat/exp. `now` defaults to the current UTC time."""
    issued_at = int((now or datetime.now(timezone.utc)).timestamp())
    payload = dict(claims)
    payload["iat"] = issued_at
    payload["exp"] = issued_at + int(ttl.total_seconds())
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode(
        token: str,
        secret: str,
        algorithm: str = DEFAULT_ALGORITHM,
) -> dict[str, Any]:
    """
    Verifies `token` and returns its full claim set (including iat/exp).

    Only `algorithm` is accepted, so an attacker cannot downgrade to "none"
    or switch to a different HMAC variant.
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired(str(exc)) from exc
    except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
        # InvalidSignatureError subclasses DecodeError; it must be caught first.
        raise TokenSignatureInvalid(str(exc)) from exc
    except jwt.InvalidTokenError as exc:
        # DecodeError, MissingRequiredClaimError, InvalidIssuedAtError,
        # ImmatureSignatureError, ...
        raise TokenMalformed(str(exc)) from exc
