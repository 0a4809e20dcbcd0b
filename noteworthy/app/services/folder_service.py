"""
services/folder_service.py — Folder hierarchy and folder CRUD.

Each owner's folders form a forest: parent_id links a folder to its parent,
NULL means the folder sits at Root. Two structural rules are enforced here:

  - Acyclicity. No update may make a folder its own ancestor.
    would_create_cycle() walks the proposed parent's ancestor chain with a
    visited set, so it terminates even on already-corrupt data.
    move_folder() runs that check and the update in one transaction while
    holding row locks on the owner's folders; migration 002 adds a
    PostgreSQL trigger that rejects any cycle that slips past.

  - Safe path rendering. build_path() never raises and never loops; bad
    data renders as "Cycle detected: ..." or "Incomplete path: ...".

Layer rules:
  - No Flask imports. Session is a parameter; commits belong to the route.
  - Authorization goes through access_service.require_access().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Union

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from noteworthy.app.errors import AppError, ErrorCode
from noteworthy.app.helpers import UNSET, isoformat
from noteworthy.app.models.folder import Folder
from noteworthy.app.models.invitation import Invitation
from noteworthy.app.models.note import Note
from noteworthy.app.models.permission import EntityType, Permission
from noteworthy.app.services import access_service
from noteworthy.app.services.access_service import Action
from noteworthy.app.services.session_service import Identity

logger = logging.getLogger(__name__)

ROOT_PATH = "Root"
PATH_SEPARATOR = " / "

ParentLookup = Union[Mapping[str, Union[str, None]], Callable[[str], Union[str, None]]]

_SORT_COLUMNS = {
    "name":       Folder.name,
    "created_at": Folder.created_at,
    "updated_at": Folder.updated_at,
}


@dataclass(frozen=True)
class FolderNode:
    name: str
    parent_id: str | None


# ── Structural checks ──────────────────────────────────────────────────────

def would_create_cycle(
        folder_id: str,
        proposed_parent_id: str | None,
        parent_of: ParentLookup,
) -> bool:
    """
    True if setting folder_id's parent to proposed_parent_id would make
    folder_id its own ancestor.

    `parent_of` maps a folder id to its current parent id (a dict or a
    callable). Unknown ids are treated as Root.
    """
    if proposed_parent_id is None:
        return False
    if proposed_parent_id == folder_id:
        return True

    lookup = parent_of if callable(parent_of) else parent_of.get

    visited: set[str] = set()
    current: str | None = proposed_parent_id
    while current is not None:
        if current == folder_id:
            return True
        if current in visited:
            # A loop above the proposed parent that does not pass through
            # folder_id. The move itself adds no cycle.
            logger.warning(
                "Existing folder cycle found above %s while checking move of %s",
                proposed_parent_id, folder_id,
            )
            return False
        visited.add(current)
        current = lookup(current)
    return False


def build_path(folder_map: Mapping[str, FolderNode], folder_id: str | None) -> str:
    """
    Renders "A / B / C" from Root down to folder_id.

    >>> build_path({"1": FolderNode("Work", None)}, "1")
    'Work'
    """
    if not folder_id:
        return ROOT_PATH

    names: list[str] = []
    visited: set[str] = set()
    current: str | None = folder_id
    while current:
        if current in visited:
            return f"Cycle detected: {PATH_SEPARATOR.join(names)}"
        visited.add(current)

        node = folder_map.get(current)
        if node is None:
            return f"Incomplete path: {PATH_SEPARATOR.join(names)}"

        names.insert(0, node.name)
        current = node.parent_id

    return PATH_SEPARATOR.join(names) if names else ROOT_PATH


def load_folder_map(owner_id: str, session: Session) -> dict[str, FolderNode]:
    rows = session.execute(
        select(Folder.id, Folder.name, Folder.parent_id).where(Folder.owner_id == owner_id)
    ).all()
    return {row.id: FolderNode(row.name, row.parent_id) for row in rows}


# ── Private helpers ────────────────────────────────────────────────────────

def _get_owned_folder_or_404(folder_id: str, owner_id: str, session: Session) -> Folder:
    """Parents and note targets must belong to the same owner."""
    folder = session.get(Folder, folder_id)
    if folder is None or folder.owner_id != owner_id:
        raise AppError(
            ErrorCode.RESOURCE_NOT_FOUND,
            "The parent folder does not exist or is not accessible.",
            404,
            field="parent_id",
        )
    return folder


def _require_unique_name(
        name: str,
        parent_id: str | None,
        owner_id: str,
        session: Session,
        exclude_id: str | None = None,
) -> None:
    stmt = select(Folder.id).where(
        Folder.owner_id == owner_id,
        Folder.name == name,
        Folder.parent_id.is_(None) if parent_id is None else Folder.parent_id == parent_id,
    )
    if exclude_id is not None:
        stmt = stmt.where(Folder.id != exclude_id)

    if session.execute(stmt).first() is not None:
        raise AppError(
            ErrorCode.DUPLICATE_FOLDER_NAME,
            f"A folder named '{name}' already exists in this location.",
            409,
            field="name",
        )


def _build_folder_dict(folder: Folder, viewer_id: str | None, path: str | None = None) -> dict:
    result = {
        "id": folder.id,
        "name": folder.name,
        "parent_id": folder.parent_id,
        "owner_id": folder.owner_id,
        "is_public": folder.is_public,
        "created_at": isoformat(folder.created_at),
        "updated_at": isoformat(folder.updated_at),
    }
    # Only the owner sees the share token; everyone else already has the link
    # or has no business with it.
    if viewer_id == folder.owner_id:
        result["public_share_token"] = folder.public_share_token
    if path is not None:
        result["path"] = path
    return result


def _lock_owner_folders(owner_id: str, session: Session) -> dict[str, str | None]:
    """
    SELECT ... FOR UPDATE on every folder of `owner_id`, in id order so that
    concurrent movers acquire locks in the same sequence. Returns id -> parent_id.

    The locks are held until the route commits. SQLite has no row locks and
    ignores FOR UPDATE; it serialises writers on its own.
    """
    rows = session.execute(
        select(Folder.id, Folder.parent_id)
        .where(Folder.owner_id == owner_id)
        .order_by(Folder.id)
        .with_for_update()
    ).all()
    return {row.id: row.parent_id for row in rows}


# ── Public service functions ───────────────────────────────────────────────

def create_folder(
        name: str,
        parent_id: str | None,
        identity: Identity,
        session: Session,
) -> dict:
    """
    Creates a folder for the caller, at Root or under one of their folders.

    Raises:
      AppError(RESOURCE_NOT_FOUND, 404)     — parent missing or not the caller's
      AppError(DUPLICATE_FOLDER_NAME, 409)  — sibling with the same name exists
    """
    if parent_id is not None:
        _get_owned_folder_or_404(parent_id, identity.user_id, session)

    _require_unique_name(name, parent_id, identity.user_id, session)

    folder = Folder(name=name, parent_id=parent_id, owner_id=identity.user_id)
    session.add(folder)
    session.flush()

    logger.info("Folder %s created by user %s", folder.id, identity.user_id)
    return _build_folder_dict(folder, identity.user_id)


def list_folders(
        identity: Identity,
        session: Session,
        parent_id: str | None = None,
        sort_by: str = "name",
        sort_order: str = "asc",
) -> list[dict]:
    """Caller's folders directly under `parent_id` (None = Root)."""
    if parent_id is not None:
        _get_owned_folder_or_404(parent_id, identity.user_id, session)

    column = _SORT_COLUMNS.get(sort_by, Folder.name)
    stmt = (
        select(Folder)
        .where(
            Folder.owner_id == identity.user_id,
            Folder.parent_id.is_(None) if parent_id is None else Folder.parent_id == parent_id,
        )
        .order_by(column.desc() if sort_order == "desc" else column.asc(), Folder.id)
    )
    folders = session.execute(stmt).scalars().all()
    return [_build_folder_dict(f, identity.user_id) for f in folders]


def _readable_by(model, entity_type: EntityType, viewer_id: str | None):
    """Filter for rows of a non-owned folder or note that viewer_id may READ."""
    if viewer_id is None:
        return model.is_public.is_(True)
    granted = select(Permission.entity_id).where(
        Permission.user_id == viewer_id,
        Permission.entity_type == entity_type.value,
    )
    return or_(model.is_public.is_(True), model.id.in_(granted))


def get_folder(folder_id: str, identity: Identity | None, session: Session) -> dict:
    """
    Folder with its rendered path and child counts. Readable by the owner,
    grantees, and anyone when public.

    Grants do not extend to ancestors or children, so a non-owner's path is
    the folder's own name and the counts cover only what they can read.
    """
    folder = access_service.require_access(
        identity, Action.READ, EntityType.FOLDER, folder_id, session,
    )
    viewer_id = identity.user_id if identity else None

    children_stmt = select(func.count(Folder.id)).where(Folder.parent_id == folder.id)
    notes_stmt = select(func.count(Note.id)).where(Note.folder_id == folder.id)
    if viewer_id == folder.owner_id:
        path = build_path(load_folder_map(folder.owner_id, session), folder.id)
    else:
        path = folder.name
        children_stmt = children_stmt.where(_readable_by(Folder, EntityType.FOLDER, viewer_id))
        notes_stmt = notes_stmt.where(_readable_by(Note, EntityType.NOTE, viewer_id))

    children_count = session.execute(children_stmt).scalar_one()
    notes_count = session.execute(notes_stmt).scalar_one()

    result = _build_folder_dict(folder, viewer_id, path=path)
    result["children_count"] = children_count
    result["notes_count"] = notes_count
    return result


# Raised by the fn_check_folder_cycle trigger and the not-own-parent CHECK.
_CHECK_VIOLATION = "23514"


def move_folder(
        folder_id: str,
        new_parent_id: str | None,
        identity: Identity,
        session: Session,
        name: str | None = None,
) -> Folder:
    """
    Reparents a folder, renaming it to `name` in the same step when given.

    Requires UPDATE on the folder and, unless moving to Root, UPDATE on the
    new parent. Both must belong to the same owner.

    Raises:
      AppError(INVALID_FIELD, 400)          — parent belongs to another owner
      AppError(FOLDER_CYCLE, 422)           — folder would become its own ancestor
      AppError(DUPLICATE_FOLDER_NAME, 409)  — name taken under the new parent
    """
    folder = access_service.require_access(
        identity, Action.UPDATE, EntityType.FOLDER, folder_id, session,
    )

    if new_parent_id is not None:
        parent = access_service.require_access(
            identity, Action.UPDATE, EntityType.FOLDER, new_parent_id, session,
        )
        if parent.owner_id != folder.owner_id:
            raise AppError(
                ErrorCode.INVALID_FIELD,
                "A folder can only be moved under a folder of the same owner.",
                400,
                field="parent_id",
            )

    # Check-then-act under the owner's row locks: a concurrent move of
    # another folder in the same tree waits here until we commit.
    parent_of = _lock_owner_folders(folder.owner_id, session)

    if would_create_cycle(folder.id, new_parent_id, parent_of):
        logger.info(
            "Rejected move of folder %s under %s: cycle", folder.id, new_parent_id,
        )
        raise _cycle_error()

    target_name = folder.name if name is None else name
    _require_unique_name(target_name, new_parent_id, folder.owner_id, session, exclude_id=folder.id)

    folder.name = target_name
    folder.parent_id = new_parent_id
    try:
        session.flush()
    except IntegrityError as exc:
        if getattr(exc.orig, "pgcode", None) != _CHECK_VIOLATION:
            raise
        logger.warning(
            "Database rejected move of folder %s under %s as a cycle", folder.id, new_parent_id,
        )
        raise _cycle_error() from exc
    return folder


def _cycle_error() -> AppError:
    return AppError(
        ErrorCode.FOLDER_CYCLE,
        "A folder cannot be moved into itself or one of its sub-folders.",
        422,
        field="parent_id",
    )


def update_folder(
        folder_id: str,
        identity: Identity,
        session: Session,
        name: str | object = UNSET,
        parent_id: str | None | object = UNSET,
) -> dict:
    """
    Renames and/or moves a folder. Fields left at UNSET are untouched;
    parent_id=None moves the folder to Root. When both are given, the new
    name must be free under the new parent.
    """
    folder = access_service.require_access(
        identity, Action.UPDATE, EntityType.FOLDER, folder_id, session,
    )
    new_name = folder.name if name is UNSET else name

    if parent_id is not UNSET and parent_id != folder.parent_id:
        move_folder(folder.id, parent_id, identity, session, name=new_name)
    elif new_name != folder.name:
        _require_unique_name(new_name, folder.parent_id, folder.owner_id, session, exclude_id=folder.id)
        folder.name = new_name
        session.flush()

    return _build_folder_dict(folder, identity.user_id)


def delete_folder(folder_id: str, identity: Identity, session: Session) -> None:
    """
    Deletes an empty folder. Owner only (DELETE).

    Grants and invitations pointing at the folder are removed with it.

    Raises:
      AppError(FOLDER_NOT_EMPTY, 422) — folder still has sub-folders or notes
    """
    folder = access_service.require_access(
        identity, Action.DELETE, EntityType.FOLDER, folder_id, session,
    )

    has_children = session.execute(
        select(Folder.id).where(Folder.parent_id == folder.id).limit(1)
    ).first() is not None
    has_notes = session.execute(
        select(Note.id).where(Note.folder_id == folder.id).limit(1)
    ).first() is not None
    if has_children or has_notes:
        raise AppError(
            ErrorCode.FOLDER_NOT_EMPTY,
            "Move or delete the folder's contents before deleting it.",
            422,
        )

    for model in (Permission, Invitation):
        for row in session.execute(
            select(model).where(
                model.entity_type == EntityType.FOLDER.value,
                model.entity_id == folder.id,
            )
        ).scalars().all():
            session.delete(row)

    session.delete(folder)
    session.flush()
    logger.info("Folder %s deleted by user %s", folder_id, identity.user_id)
