"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field types, lengths, email format, password strength.
  - services/auth_service.py: DUPLICATE_EMAIL (needs a DB lookup) and
    credential checks.

The refresh token never appears in a request body; it is read from the
HttpOnly cookie by the route.

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests. See extensions.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates

# bcrypt only looks at the first 72 bytes and newer releases refuse longer
# input outright.
_BCRYPT_MAX_BYTES = 72

_SPECIAL_CHARACTERS = set("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?`~")


def _validate_password_bytes(value: str) -> None:
    if len(value.encode("utf-8")) > _BCRYPT_MAX_BYTES:
        raise ValidationError("Password must be at most 72 bytes long.")


class RegisterSchema(Schema):
    """
    POST /auth/register

    Field rules:
      email    : valid email format, max 255 chars
      password : min 8 chars with at least one uppercase letter, one
                 lowercase letter, one digit and one special character
    """

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(required=True, load_only=True)

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        """One message per missing rule, checked in order."""
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        _validate_password_bytes(value)
        if not any(c.isupper() for c in value):
            raise ValidationError("Password must contain at least one uppercase letter.")
        if not any(c.islower() for c in value):
            raise ValidationError("Password must contain at least one lowercase letter.")
        if not any(c.isdigit() for c in value):
            raise ValidationError("Password must contain at least one digit.")
        if not any(c in _SPECIAL_CHARACTERS for c in value):
            raise ValidationError("Password must contain at least one special character.")


class LoginSchema(Schema):
    """
    POST /auth/login

    Only presence is checked here; whether the credentials are right is
    auth_service's call (INVALID_CREDENTIALS, 401).
    """

    email = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    password = fields.Str(
        required=True,
        load_only=True,
        validate=_validate_password_bytes,
    )
