"""
schemas/sharing_schema.py — Schemas for permissions, invitations and search.

Validation responsibility:
  - This file: enum values (entity_type, access_level), email format,
    search limits.
  - services/: ownership (MANAGE), existing grants/invitations, the
    invitee's identity.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from noteworthy.app.schemas.common import (
    access_level_field,
    entity_type_field,
    id_field,
    validate_non_empty_after_trim,
)
from noteworthy.app.services.search_service import DEFAULT_LIMIT, MAX_LIMIT


class EntityQuerySchema(Schema):
    """GET /permissions?entity_type=&entity_id="""

    entity_type = entity_type_field(required=True)
    entity_id = id_field(required=True)


class GrantPermissionSchema(Schema):
    """POST /permissions"""

    user_id = id_field(required=True)
    entity_type = entity_type_field(required=True)
    entity_id = id_field(required=True)
    access_level = access_level_field(required=True)


class UpdatePermissionSchema(Schema):
    """PATCH /permissions/:id"""

    access_level = access_level_field(required=True)


class CreateInvitationSchema(Schema):
    """POST /invitations"""

    invitee_email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )
    entity_type = entity_type_field(required=True)
    entity_id = id_field(required=True)
    access_level = access_level_field(required=True)


class SearchQuerySchema(Schema):
    """GET /search?query=&limit="""

    query = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=200),
            validate_non_empty_after_trim,
        ],
    )
    limit = fields.Int(
        load_default=DEFAULT_LIMIT,
        validate=validate.Range(
            min=1,
            max=MAX_LIMIT,
            error=f"limit must be between 1 and {MAX_LIMIT}.",
        ),
    )
