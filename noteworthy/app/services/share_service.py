"""
services/share_service.py — Public share links for notes and folders.

A resource is reachable anonymously iff is_public is true AND the caller
presents its public_share_token. The two fields move together:

  make public,  token already set  -> token kept (existing links stay valid)
  make public,  no token           -> new 256-bit token minted
  make private                     -> token cleared (old links die)

Making a resource private and then public again therefore yields a new
link. The database enforces the same pairing with a CHECK constraint.

Layer rules:
  - No Flask imports. Commits belong to the route.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Callable

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from noteworthy.app.errors import AppError, ErrorCode
from noteworthy.app.helpers import isoformat
from noteworthy.app.models.folder import Folder
from noteworthy.app.models.note import Note
from noteworthy.app.models.permission import EntityType
from noteworthy.app.services import access_service
from noteworthy.app.services.access_service import Action
from noteworthy.app.services.session_service import Identity

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 32


def new_share_token() -> str:
    """32 random bytes as hex (64 chars)."""
    return secrets.token_hex(SHARE_TOKEN_BYTES)


def apply_public_flag(
        resource: Any,
        is_public: bool,
        token_factory: Callable[[], str] = new_share_token,
) -> Any:
    """Sets is_public and keeps public_share_token consistent with it."""
    if is_public:
        if not resource.public_share_token:
            resource.public_share_token = token_factory()
        resource.is_public = True
    else:
        resource.is_public = False
        resource.public_share_token = None
    return resource


def set_public(
        resource_type: EntityType | str,
        resource_id: str,
        is_public: bool,
        identity: Identity,
        session: Session,
) -> dict:
    """
    Toggles the public flag. Owner only (MANAGE).

    Returns: {"id", "is_public", "public_share_token"}
    """
    resource = access_service.require_access(
        identity, Action.MANAGE, resource_type, resource_id, session,
    )
    apply_public_flag(resource, is_public)
    session.flush()

    logger.info(
        "%s %s set %s by user %s",
        EntityType(resource_type).value,
        resource_id,
        "public" if is_public else "private",
        identity.user_id,
    )
    return {
        "id": resource.id,
        "is_public": resource.is_public,
        "public_share_token": resource.public_share_token,
    }


def resolve_by_token(
        resource_type: EntityType | str,
        token: str,
        session: Session,
) -> Any:
    """
    Returns the resource whose token matches and which is still public.

    Raises AppError(RESOURCE_NOT_FOUND, 404) otherwise.
    """
    model = access_service.model_for(resource_type)
    resource = None
    if token:
        resource = session.execute(
            select(model).where(
                model.public_share_token == token,
                model.is_public.is_(True),
            )
        ).scalar_one_or_none()

    if resource is None:
        raise AppError(
            ErrorCode.RESOURCE_NOT_FOUND,
            f"The shared {EntityType(resource_type).value} was not found or is no longer public.",
            404,
        )
    return resource


# ── Anonymous read payloads ────────────────────────────────────────────────

def _owner_dict(resource: Any) -> dict:
    return {"id": resource.owner.id, "email": resource.owner.email}


def get_public_note(token: str, session: Session) -> dict:
    note = resolve_by_token(EntityType.NOTE, token, session)
    return {
        "id": note.id,
        "title": note.title,
        "content_markdown": note.content_markdown,
        "created_at": isoformat(note.created_at),
        "updated_at": isoformat(note.updated_at),
        "owner": _owner_dict(note),
    }


def get_public_folder(token: str, session: Session) -> dict:
    """
    Folder plus its direct children. Only children that are themselves
    public or belong to the folder's owner are listed, titles/names only.
    """
    folder = resolve_by_token(EntityType.FOLDER, token, session)

    notes = session.execute(
        select(Note)
        .where(
            Note.folder_id == folder.id,
            or_(Note.is_public.is_(True), Note.owner_id == folder.owner_id),
        )
        .order_by(Note.title.asc())
    ).scalars().all()

    sub_folders = session.execute(
        select(Folder)
        .where(
            Folder.parent_id == folder.id,
            or_(Folder.is_public.is_(True), Folder.owner_id == folder.owner_id),
        )
        .order_by(Folder.name.asc())
    ).scalars().all()

    return {
        "id": folder.id,
        "name": folder.name,
        "created_at": isoformat(folder.created_at),
        "updated_at": isoformat(folder.updated_at),
        "owner": _owner_dict(folder),
        "notes": [
            {
                "id": n.id,
                "title": n.title,
                "is_public": n.is_public,
                "created_at": isoformat(n.created_at),
                "updated_at": isoformat(n.updated_at),
            }
            for n in notes
        ],
        "sub_folders": [
            {
                "id": f.id,
                "name": f.name,
                "is_public": f.is_public,
                "created_at": isoformat(f.created_at),
            }
            for f in sub_folders
        ],
    }
