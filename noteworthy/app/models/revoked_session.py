"""
models/revoked_session.py — Refresh-token denylist.

No business logic. No imports from services or routes.

Refresh tokens are stateless JWTs carrying a random session id (`sid`).
Logging out records that sid here; refresh verification rejects any token
whose sid is present. Rows are only useful until the token would have
expired anyway; auth_service.purge_expired_revocations() deletes rows past
expires_at on every logout.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from noteworthy.app.extensions import db
from noteworthy.app.helpers import new_id


class RevokedSession(db.Model):
    __tablename__ = "revoked_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # The `sid` claim of the revoked refresh token, never the token itself.
    session_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
    )

    # ON DELETE CASCADE: denylist entries are owned by the user.
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # The revoked token's own `exp`; after this the row can be pruned.
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    revoked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<RevokedSession session_id={self.session_id} "
            f"user_id={self.user_id}>"
        )
