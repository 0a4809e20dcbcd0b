"""
services/search_service.py — Search over the caller's own folders and notes.

Case-insensitive substring match on folder names, note titles and note
content. Every hit carries the folder path it lives in, rendered with
folder_service.build_path() from one snapshot of the caller's folders, so
corrupt parent links show up as "Cycle detected: ..." instead of failing
the request.
"""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from noteworthy.app.models.folder import Folder
from noteworthy.app.models.note import Note
from noteworthy.app.services.folder_service import build_path, load_folder_map
from noteworthy.app.services.session_service import Identity

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def search(
        query: str,
        identity: Identity,
        session: Session,
        limit: int = DEFAULT_LIMIT,
) -> dict:
    """
    Returns {"folders": [...], "notes": [...]}, each list capped at `limit`.

    `limit` is clamped to 1..MAX_LIMIT; the schema rejects values outside it
    before they get here.
    """
    limit = max(1, min(limit, MAX_LIMIT))
    folder_map = load_folder_map(identity.user_id, session)

    folders = session.execute(
        select(Folder)
        .where(
            Folder.owner_id == identity.user_id,
            Folder.name.icontains(query, autoescape=True),
        )
        .order_by(Folder.name.asc(), Folder.id)
        .limit(limit)
    ).scalars().all()

    notes = session.execute(
        select(Note)
        .where(
            Note.owner_id == identity.user_id,
            or_(
                Note.title.icontains(query, autoescape=True),
                Note.content_markdown.icontains(query, autoescape=True),
            ),
        )
        .order_by(Note.title.asc(), Note.id)
        .limit(limit)
    ).scalars().all()

    return {
        "folders": [
            {
                "id": f.id,
                "name": f.name,
                "parent_id": f.parent_id,
                "path": build_path(folder_map, f.id),
            }
            for f in folders
        ],
        "notes": [
            {
                "id": n.id,
                "title": n.title,
                "folder_id": n.folder_id,
                "path": build_path(folder_map, n.folder_id),
            }
            for n in notes
        ],
    }
