"""
schemas/note_schema.py — Marshmallow schemas for note endpoints.

Validation responsibility:
  - This file: title length / non-blank, content type, body shape.
  - services/note_service.py: folder ownership and access checks.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, pre_load, validates_schema

from noteworthy.app.schemas.common import id_field, name_field


class CreateNoteSchema(Schema):
    """POST /notes"""

    title = name_field("Note title", required=True)
    content_markdown = fields.Str(load_default="")
    folder_id = id_field(allow_none=True, load_default=None)


class UpdateNoteSchema(Schema):
    """PATCH /notes/:id — any subset of the fields, at least one."""

    title = name_field("Note title")
    content_markdown = fields.Str()
    folder_id = id_field(allow_none=True)

    @validates_schema
    def validate_not_empty(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("Provide at least one of: title, content_markdown, folder_id.")


class ListNotesSchema(Schema):
    """GET /notes?folder_id="""

    folder_id = id_field(allow_none=True, load_default=None)

    @pre_load
    def normalise_folder(self, data, **kwargs):
        if data.get("folder_id") in ("null", ""):
            data = dict(data)
            data["folder_id"] = None
        return data
