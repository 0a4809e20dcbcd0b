"""
models/note.py — Note table definition.

No business logic. No imports from services or routes.
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
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from noteworthy.app.extensions import db
from noteworthy.app.helpers import new_id


class Note(db.Model):
    __tablename__ = "notes"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_notes_title_nonempty",
        ),
        CheckConstraint(
            "(is_public AND public_share_token IS NOT NULL) "
            "OR (NOT is_public AND public_share_token IS NULL)",
            name="ck_notes_public_token",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    content_markdown: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # ON DELETE SET NULL: a note outlives its folder and falls back to Root.
    folder_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("folders.id", ondelete="SET NULL"),
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
        back_populates="notes",
    )

    folder: Mapped[Optional["Folder"]] = relationship(  # noqa: F821
        "Folder",
        back_populates="notes",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Note id={self.id} "
            f"title={self.title!r} "
            f"public={self.is_public}>"
        )
