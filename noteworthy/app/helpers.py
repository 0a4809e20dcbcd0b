"""
helpers.py — Small stateless helpers shared by models and services.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Primary key generator for every table (UUID4 as text)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Returns `value` as an aware UTC datetime.

    SQLite drops tzinfo from DateTime(timezone=True) columns; PostgreSQL keeps
    it. Comparisons against utcnow() must work on both.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def mask_email(email: str | None) -> str:
    """'alice@example.com' -> 'ali***@example.com'. Used in log lines only."""
    if not email:
        return "missing"
    local, _, domain = email.partition("@")
    return f"{local[:3]}***@{domain}" if domain else f"{local[:3]}***"


def isoformat(value: datetime | None) -> str | None:
    """ISO-8601 in UTC, or None. Response dicts use this for every timestamp."""
    if value is None:
        return None
    return as_utc(value).isoformat()


# Marks "field not sent" in partial updates, where None is a real value
# (e.g. folder_id=None moves a note to Root).
UNSET = object()
