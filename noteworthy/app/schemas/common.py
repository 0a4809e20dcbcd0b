"""
schemas/common.py — Validators and field factories shared by the schemas.
"""

from __future__ import annotations

from marshmallow import ValidationError, fields, validate

from noteworthy.app.models.permission import AccessLevel, EntityType


def validate_non_empty_after_trim(value: str) -> None:
    """
    Rejects blank or whitespace-only strings. Mirrors the DB
    CHECK(LENGTH(TRIM(...)) > 0) constraints at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def name_field(label: str, **kwargs) -> fields.Str:
    """Folder names and note titles: 1-255 chars, not blank."""
    return fields.Str(
        validate=[
            validate.Length(
                min=1,
                max=255,
                error=f"{label} must be between 1 and 255 characters.",
            ),
            validate_non_empty_after_trim,
        ],
        **kwargs,
    )


def id_field(**kwargs) -> fields.Str:
    return fields.Str(validate=validate.Length(min=1, max=36), **kwargs)


def entity_type_field(**kwargs) -> fields.Str:
    return fields.Str(
        validate=validate.OneOf(
            [e.value for e in EntityType],
            error="entity_type must be 'note' or 'folder'.",
        ),
        **kwargs,
    )


def access_level_field(**kwargs) -> fields.Str:
    return fields.Str(
        validate=validate.OneOf(
            [a.value for a in AccessLevel],
            error="access_level must be 'view' or 'edit'.",
        ),
        **kwargs,
    )
