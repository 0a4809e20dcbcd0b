"""
services/note_service.py — Note CRUD.

Authorization (via access_service):
  read    owner, any grantee, or anyone when the note is public
  update  owner or an `edit` grantee
  delete  owner only

A note may only be placed in a folder that belongs to the note's owner.

Layer rules:
  - No Flask imports. Session is a parameter; commits belong to the route.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from noteworthy.app.errors import AppError, ErrorCode
from noteworthy.app.helpers import UNSET, isoformat
from noteworthy.app.models.folder import Folder
from noteworthy.app.models.invitation import Invitation
from noteworthy.app.models.note import Note
from noteworthy.app.models.permission import EntityType, Permission
from noteworthy.app.models.user import User
from noteworthy.app.services import access_service
from noteworthy.app.services.access_service import Action
from noteworthy.app.services.session_service import Identity

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _require_owner_folder(folder_id: str, owner_id: str, session: Session) -> None:
    folder = session.get(Folder, folder_id)
    if folder is None or folder.owner_id != owner_id:
        raise AppError(
            ErrorCode.RESOURCE_NOT_FOUND,
            "The folder does not exist or is not accessible.",
            404,
            field="folder_id",
        )


def _build_note_dict(note: Note, viewer_id: str | None) -> dict:
    result = {
        "id": note.id,
        "title": note.title,
        "content_markdown": note.content_markdown,
        "folder_id": note.folder_id,
        "owner_id": note.owner_id,
        "is_public": note.is_public,
        "created_at": isoformat(note.created_at),
        "updated_at": isoformat(note.updated_at),
    }
    if viewer_id == note.owner_id:
        result["public_share_token"] = note.public_share_token
    return result


# ── Public service functions ───────────────────────────────────────────────

def create_note(
        title: str,
        content_markdown: str,
        folder_id: str | None,
        identity: Identity,
        session: Session,
) -> dict:
    """
    Raises:
      AppError(RESOURCE_NOT_FOUND, 404) — folder missing or not the caller's
    """
    if folder_id is not None:
        _require_owner_folder(folder_id, identity.user_id, session)

    note = Note(
        title=title,
        content_markdown=content_markdown,
        folder_id=folder_id,
        owner_id=identity.user_id,
    )
    session.add(note)
    session.flush()

    logger.info("Note %s created by user %s", note.id, identity.user_id)
    return _build_note_dict(note, identity.user_id)


def get_note(note_id: str, identity: Identity | None, session: Session) -> dict:
    note = access_service.require_access(
        identity, Action.READ, EntityType.NOTE, note_id, session,
    )
    return _build_note_dict(note, identity.user_id if identity else None)


def update_note(
        note_id: str,
        identity: Identity,
        session: Session,
        title: str | object = UNSET,
        content_markdown: str | object = UNSET,
        folder_id: str | None | object = UNSET,
) -> dict:
    """Partial update. folder_id=None moves the note to Root."""
    note = access_service.require_access(
        identity, Action.UPDATE, EntityType.NOTE, note_id, session,
    )

    if folder_id is not UNSET and folder_id != note.folder_id:
        if folder_id is not None:
            _require_owner_folder(folder_id, note.owner_id, session)
        note.folder_id = folder_id

    if title is not UNSET:
        note.title = title
    if content_markdown is not UNSET:
        note.content_markdown = content_markdown

    session.flush()
    return _build_note_dict(note, identity.user_id)


def delete_note(note_id: str, identity: Identity, session: Session) -> None:
    """Owner only. Grants and invitations for the note go with it."""
    note = access_service.require_access(
        identity, Action.DELETE, EntityType.NOTE, note_id, session,
    )

    for model in (Permission, Invitation):
        for row in session.execute(
            select(model).where(
                model.entity_type == EntityType.NOTE.value,
                model.entity_id == note.id,
            )
        ).scalars().all():
            session.delete(row)

    session.delete(note)
    session.flush()
    logger.info("Note %s deleted by user %s", note_id, identity.user_id)


def list_notes(
        identity: Identity,
        session: Session,
        folder_id: str | None = None,
) -> list[dict]:
    """The caller's own notes, newest first, optionally limited to one folder."""
    stmt = select(Note).where(Note.owner_id == identity.user_id)
    if folder_id is not None:
        _require_owner_folder(folder_id, identity.user_id, session)
        stmt = stmt.where(Note.folder_id == folder_id)

    notes = session.execute(
        stmt.order_by(Note.created_at.desc(), Note.id)
    ).scalars().all()
    return [_build_note_dict(n, identity.user_id) for n in notes]


def list_shared_notes(identity: Identity, session: Session) -> list[dict]:
    """
    Notes other users have granted the caller access to, with the caller's
    access level and the owner's email.
    """
    rows = session.execute(
        select(Note, Permission.access_level, User.email)
        .join(
            Permission,
            (Permission.entity_id == Note.id)
            & (Permission.entity_type == EntityType.NOTE.value),
        )
        .join(User, User.id == Note.owner_id)
        .where(
            Permission.user_id == identity.user_id,
            Note.owner_id != identity.user_id,
        )
        .order_by(Note.created_at.desc(), Note.id)
    ).all()

    result = []
    for note, access_level, owner_email in rows:
        item = _build_note_dict(note, identity.user_id)
        item["access_level"] = access_level
        item["owner_email"] = owner_email
        result.append(item)
    return result
