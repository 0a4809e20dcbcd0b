"""
services/access_service.py — Per-resource authorization.

One decision function for every note and folder operation:

  decide(identity, action, resource, grant) -> Decision

Rules, first match wins:
  1. READ of a public resource            -> allow (anonymous too)
  2. no identity                          -> deny UNAUTHENTICATED
  3. caller owns the resource             -> allow
  4. explicit grant:
       READ   needs view or edit
       UPDATE needs edit
       DELETE / MANAGE are owner-only; a grant never satisfies them
  5. anything else                        -> deny NOT_FOUND_OR_FORBIDDEN

A missing resource and an inaccessible one produce the same denial, so the
API cannot be used to probe for ids. Grants on a folder do not extend to
the notes or sub-folders inside it.

decide() is pure. authorize() loads the rows through the session and
calls it; require_access() turns a denial into an AppError.

Layer rules:
  - No Flask imports. Session is a parameter; nothing is flushed here.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from noteworthy.app.errors import AppError, AuthError, AuthFailure, ErrorCode
from noteworthy.app.models.folder import Folder
from noteworthy.app.models.note import Note
from noteworthy.app.models.permission import AccessLevel, EntityType, Permission
from noteworthy.app.services.session_service import Identity

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    READ   = "read"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"   # share, change public flag, invite


class DenyReason(str, enum.Enum):
    UNAUTHENTICATED        = "unauthenticated"
    NOT_FOUND_OR_FORBIDDEN = "not_found_or_forbidden"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None


ALLOW = Decision(True)

# Resource type -> model. EntityType doubles as the resource type so that
# grant rows and resources are keyed the same way.
_MODELS: dict[EntityType, type] = {
    EntityType.NOTE:   Note,
    EntityType.FOLDER: Folder,
}

_GRANT_LEVELS: dict[Action, frozenset[str]] = {
    Action.READ:   frozenset({AccessLevel.VIEW.value, AccessLevel.EDIT.value}),
    Action.UPDATE: frozenset({AccessLevel.EDIT.value}),
}


def decide(
        identity: Identity | None,
        action: Action,
        resource: Any | None,
        grant: Any | None,
) -> Decision:
    """
    `resource` needs `owner_id` and `is_public`; `grant` needs
    `access_level`. Either may be None.
    """
    if action is Action.READ and resource is not None and resource.is_public:
        return ALLOW

    if identity is None:
        return Decision(False, DenyReason.UNAUTHENTICATED)

    if resource is None:
        return Decision(False, DenyReason.NOT_FOUND_OR_FORBIDDEN)

    if identity.user_id == resource.owner_id:
        return ALLOW

    if grant is not None and grant.access_level in _GRANT_LEVELS.get(action, frozenset()):
        return ALLOW

    return Decision(False, DenyReason.NOT_FOUND_OR_FORBIDDEN)


# ── Row loading ────────────────────────────────────────────────────────────

def model_for(resource_type: EntityType | str) -> type:
    return _MODELS[EntityType(resource_type)]


def load_resource(
        resource_type: EntityType | str,
        resource_id: str,
        session: Session,
) -> Any | None:
    return session.get(model_for(resource_type), resource_id)


def load_grant(
        user_id: str,
        resource_type: EntityType | str,
        resource_id: str,
        session: Session,
) -> Permission | None:
    return session.execute(
        select(Permission).where(
            Permission.user_id == user_id,
            Permission.entity_type == EntityType(resource_type).value,
            Permission.entity_id == resource_id,
        )
    ).scalar_one_or_none()


def authorize(
        identity: Identity | None,
        action: Action,
        resource_type: EntityType | str,
        resource_id: str,
        session: Session,
) -> Decision:
    resource = load_resource(resource_type, resource_id, session)
    grant = _grant_for(identity, resource, resource_type, resource_id, session)
    return decide(identity, action, resource, grant)


def _grant_for(identity, resource, resource_type, resource_id, session):
    # Owners and anonymous callers never need the grant lookup.
    if identity is None or resource is None or identity.user_id == resource.owner_id:
        return None
    return load_grant(identity.user_id, resource_type, resource_id, session)


def require_access(
        identity: Identity | None,
        action: Action,
        resource_type: EntityType | str,
        resource_id: str,
        session: Session,
) -> Any:
    """
    Returns the loaded resource if `action` is allowed.

    Raises:
      AuthError (401)                     — anonymous caller, non-public resource
      AppError(RESOURCE_NOT_FOUND, 404)   — absent, or invisible to the caller
      AppError(FORBIDDEN, 403)            — caller can read the resource but
                                            not perform `action` on it
    """
    resource = load_resource(resource_type, resource_id, session)
    grant = _grant_for(identity, resource, resource_type, resource_id, session)

    decision = decide(identity, action, resource, grant)
    if decision.allowed:
        return resource

    if decision.reason is DenyReason.UNAUTHENTICATED:
        raise AuthError(AuthFailure.MISSING_TOKEN)

    kind = EntityType(resource_type).value
    if action is not Action.READ and decide(identity, Action.READ, resource, grant).allowed:
        logger.info(
            "Denied %s on %s %s for user %s",
            action.value, kind, resource_id, identity.user_id,
        )
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You do not have permission to {action.value} this {kind}.",
            403,
        )

    raise AppError(
        ErrorCode.RESOURCE_NOT_FOUND,
        f"The {kind} does not exist or is not accessible.",
        404,
    )
