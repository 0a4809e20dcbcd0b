"""
schemas/folder_schema.py — Marshmallow schemas for folder endpoints.

Validation responsibility:
  - This file: name length / non-blank, sort options, body shape.
  - services/folder_service.py:
      - parent ownership (RESOURCE_NOT_FOUND, 404)
      - DUPLICATE_FOLDER_NAME (409) and FOLDER_CYCLE (422), which need the
        owner's folder tree

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, pre_load, validate, validates_schema

from noteworthy.app.schemas.common import id_field, name_field


def _null_query_value(data: dict, key: str) -> dict:
    """Query strings cannot carry null; accept "null" and "" for Root."""
    if data.get(key) in ("null", ""):
        data = dict(data)
        data[key] = None
    return data


class CreateFolderSchema(Schema):
    """POST /folders — parent_id omitted or null creates the folder at Root."""

    name = name_field("Folder name", required=True)
    parent_id = id_field(allow_none=True, load_default=None)


class UpdateFolderSchema(Schema):
    """
    PATCH /folders/:id

    Both fields optional, at least one required. parent_id=null moves the
    folder to Root; leaving it out keeps the current parent.
    """

    name = name_field("Folder name")
    parent_id = id_field(allow_none=True)

    @validates_schema
    def validate_not_empty(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("Provide at least one of: name, parent_id.")


class ListFoldersSchema(Schema):
    """GET /folders?parent_id=&sort_by=&sort_order="""

    parent_id = id_field(allow_none=True, load_default=None)
    sort_by = fields.Str(
        load_default="name",
        validate=validate.OneOf(["name", "created_at", "updated_at"]),
    )
    sort_order = fields.Str(
        load_default="asc",
        validate=validate.OneOf(["asc", "desc"]),
    )

    @pre_load
    def normalise_parent(self, data, **kwargs):
        return _null_query_value(data, "parent_id")


class SetPublicSchema(Schema):
    """PUT /folders/:id/public and PUT /notes/:id/public"""

    is_public = fields.Boolean(
        required=True,
        truthy={True},
        falsy={False},
    )
