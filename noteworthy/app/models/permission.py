"""
models/permission.py — Permission (explicit share grant) table definition.

No business logic. No imports from services or routes.

A grant is unique per (user_id, entity_type, entity_id). Changing the access
level updates the row in place (permission_service.upsert_grant); a second
row for the same key is never created.

entity_id is polymorphic (note or folder id), so it carries no FK. Grants
are removed together with their entity by the note/folder delete services.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from noteworthy.app.extensions import db
from noteworthy.app.helpers import new_id


# ── Enum Definitions ───────────────────────────────────────────────────────
# Imported by schemas and services; do not repeat these as string literals.

class EntityType(str, enum.Enum):
    NOTE   = "note"
    FOLDER = "folder"


class AccessLevel(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"


class Permission(db.Model):
    __tablename__ = "permissions"

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "entity_type",
            "entity_id",
            name="uq_permissions_user_entity",
        ),
        CheckConstraint(
            "entity_type IN ('note', 'folder')",
            name="ck_permissions_entity_type",
        ),
        CheckConstraint(
            "access_level IN ('view', 'edit')",
            name="ck_permissions_access_level",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # ON DELETE CASCADE: grants are owned by the grantee.
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    entity_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )

    entity_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
    )

    access_level: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="permissions",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Permission id={self.id} "
            f"user_id={self.user_id} "
            f"{self.entity_type}={self.entity_id} "
            f"level={self.access_level}>"
        )
