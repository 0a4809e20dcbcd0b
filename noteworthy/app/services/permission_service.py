"""
services/permission_service.py — Explicit share grants.

A grant gives one user `view` or `edit` access to one note or folder.
There is at most one grant per (user, entity); granting again changes the
level of the existing row instead of adding a second one.

Authorization rules:
  - Listing who has access: anyone who can READ the entity
  - Granting / changing a level: MANAGE (owner only)
  - Revoking: MANAGE, or the grantee removing their own grant

Layer rules:
  - No Flask imports. Session is a parameter; commits belong to the route.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from noteworthy.app.errors import AppError, ErrorCode
from noteworthy.app.helpers import isoformat
from noteworthy.app.models.permission import EntityType, Permission
from noteworthy.app.models.user import User
from noteworthy.app.services import access_service
from noteworthy.app.services.access_service import Action
from noteworthy.app.services.session_service import Identity

logger = logging.getLogger(__name__)

CREATED   = "created"
UPDATED   = "updated"
UNCHANGED = "unchanged"


def _build_permission_dict(permission: Permission) -> dict:
    return {
        "id": permission.id,
        "user_id": permission.user_id,
        "entity_type": permission.entity_type,
        "entity_id": permission.entity_id,
        "access_level": permission.access_level,
        "created_at": isoformat(permission.created_at),
    }


def _get_permission_or_404(permission_id: str, session: Session) -> Permission:
    permission = session.get(Permission, permission_id)
    if permission is None:
        raise AppError(
            ErrorCode.PERMISSION_NOT_FOUND,
            f"Permission {permission_id} does not exist.",
            404,
        )
    return permission


def upsert_grant(
        user_id: str,
        entity_type: EntityType | str,
        entity_id: str,
        access_level: str,
        session: Session,
) -> tuple[Permission, str]:
    """
    Creates or updates the single grant for (user_id, entity_type, entity_id).

    No authorization here; callers check MANAGE (or an accepted invitation)
    first. Returns the row and one of CREATED / UPDATED / UNCHANGED.
    """
    entity_type = EntityType(entity_type).value
    existing = session.execute(
        select(Permission).where(
            Permission.user_id == user_id,
            Permission.entity_type == entity_type,
            Permission.entity_id == entity_id,
        )
    ).scalar_one_or_none()

    if existing is None:
        permission = Permission(
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            access_level=access_level,
        )
        session.add(permission)
        session.flush()
        return permission, CREATED

    if existing.access_level == access_level:
        return existing, UNCHANGED

    existing.access_level = access_level
    session.flush()
    return existing, UPDATED


# ── Public service functions ───────────────────────────────────────────────

def list_access(
        entity_type: EntityType | str,
        entity_id: str,
        identity: Identity,
        session: Session,
) -> list[dict]:
    """
    Everyone with access to the entity: the owner first (access_level
    "owner"), then grantees in the order they were added.
    """
    resource = access_service.require_access(
        identity, Action.READ, entity_type, entity_id, session,
    )

    owner = session.get(User, resource.owner_id)
    result = [{
        "permission_id": None,
        "user_id": owner.id,
        "email": owner.email,
        "access_level": "owner",
    }]

    rows = session.execute(
        select(Permission, User.email)
        .join(User, User.id == Permission.user_id)
        .where(
            Permission.entity_type == EntityType(entity_type).value,
            Permission.entity_id == entity_id,
        )
        .order_by(Permission.created_at.asc(), Permission.id)
    ).all()
    for permission, email in rows:
        result.append({
            "permission_id": permission.id,
            "user_id": permission.user_id,
            "email": email,
            "access_level": permission.access_level,
        })
    return result


def grant_permission(
        user_id: str,
        entity_type: EntityType | str,
        entity_id: str,
        access_level: str,
        identity: Identity,
        session: Session,
) -> tuple[dict, str]:
    """
    Grants `access_level` on the entity to `user_id`. Owner only.

    Raises:
      AppError(USER_NOT_FOUND, 404)      — grantee does not exist
      AppError(CANNOT_GRANT_OWNER, 422)  — grantee already owns the entity

    Returns: (permission dict, CREATED | UPDATED | UNCHANGED)
    """
    resource = access_service.require_access(
        identity, Action.MANAGE, entity_type, entity_id, session,
    )

    if session.get(User, user_id) is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
            field="user_id",
        )

    if user_id == resource.owner_id:
        raise AppError(
            ErrorCode.CANNOT_GRANT_OWNER,
            "The owner already has full access.",
            422,
            field="user_id",
        )

    permission, outcome = upsert_grant(user_id, entity_type, entity_id, access_level, session)
    logger.info(
        "Grant %s %s: user %s -> %s on %s %s",
        permission.id, outcome, user_id, access_level,
        EntityType(entity_type).value, entity_id,
    )
    return _build_permission_dict(permission), outcome


def update_permission(
        permission_id: str,
        access_level: str,
        identity: Identity,
        session: Session,
) -> dict:
    permission = _get_permission_or_404(permission_id, session)
    access_service.require_access(
        identity, Action.MANAGE, permission.entity_type, permission.entity_id, session,
    )

    permission.access_level = access_level
    session.flush()
    return _build_permission_dict(permission)


def revoke_permission(permission_id: str, identity: Identity, session: Session) -> None:
    """Owner may revoke any grant; a grantee may drop their own."""
    permission = _get_permission_or_404(permission_id, session)

    if permission.user_id != identity.user_id:
        access_service.require_access(
            identity, Action.MANAGE, permission.entity_type, permission.entity_id, session,
        )

    session.delete(permission)
    session.flush()
    logger.info("Grant %s revoked by user %s", permission_id, identity.user_id)
