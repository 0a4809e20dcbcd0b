"""
models/folder.py — Folder table definition.

No business logic. No imports from services or routes.

Key design points:
  - parent_folder_id forms a tree per owner. It must stay acyclic; the
    service layer checks every reparent (folder_service.move_folder) and
    migration 002 installs a trigger that rejects cycles in PostgreSQL.
  - public_share_token is non-null iff is_public (CHECK below).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from noteworthy.app.extensions import db
from noteworthy.app.helpers import new_id


class Folder(db.Model):
    __tablename__ = "folders"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_folders_name_nonempty",
        ),
        CheckConstraint(
            "parent_folder_id IS NULL OR parent_folder_id <> id",
            name="ck_folders_not_own_parent",
        ),
        CheckConstraint(
            "(is_public AND public_share_token IS NOT NULL) "
            "OR (NOT is_public AND public_share_token IS NULL)",
            name="ck_folders_public_token",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Deleting a parent is refused while it has children (FOLDER_NOT_EMPTY),
    # so NO ACTION is enough here.
    parent_id: Mapped[str | None] = mapped_column(
        "parent_folder_id",
        String(36),
        ForeignKey("folders.id", ondelete="NO ACTION"),
        nullable=True,
        index=True,
    )

    owner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    public_share_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        unique=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    owner: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="folders",
    )

    parent: Mapped[Optional["Folder"]] = relationship(
        "Folder",
        remote_side=[id],
        back_populates="children",
    )

    children: Mapped[list["Folder"]] = relationship(
        "Folder",
        back_populates="parent",
    )

    notes: Mapped[list["Note"]] = relationship(  # noqa: F821
        "Note",
        back_populates="folder",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Folder id={self.id} "
            f"name={self.name!r} "
            f"parent_id={self.parent_id}>"
        )
