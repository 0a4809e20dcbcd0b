"""Initial schema — all tables, constraints, and indexes.

Revision: 001_initial_schema
Created:  2026-10-17

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order (FK dependencies):
  users → folders → notes → permissions → invitations → revoked_sessions

Enumerated values (entity_type, access_level, invitation status) are plain
VARCHAR columns with CHECK constraints so the same models run on SQLite in
tests.

ON DELETE policies:
  folders.owner_id            → RESTRICT   (cannot delete a user with folders)
  folders.parent_folder_id    → NO ACTION  (non-empty folders are not deletable)
  notes.owner_id              → RESTRICT
  notes.folder_id             → SET NULL   (note falls back to Root)
  permissions.user_id         → CASCADE    (grant owned by grantee)
  invitations.inviter_id      → CASCADE
  revoked_sessions.user_id    → CASCADE
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration, no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None

_PUBLIC_TOKEN_CHECK = (
    "(is_public AND public_share_token IS NOT NULL) "
    "OR (NOT is_public AND public_share_token IS NULL)"
)


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("email LIKE '%@%'", name="ck_users_email_format"),
    )

    # ── folders ────────────────────────────────────────────────────────────
    # Self-referencing tree. Acyclicity beyond "not its own parent" is
    # enforced by the trigger in 002_add_folder_cycle_trigger.
    op.create_table(
        "folders",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "parent_folder_id",
            sa.String(36),
            sa.ForeignKey("folders.id", ondelete="NO ACTION", name="fk_folders_parent"),
            nullable=True,
        ),
        sa.Column(
            "owner_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_folders_owner"),
            nullable=False,
        ),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")),
        sa.Column("public_share_token", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_folders"),
        sa.UniqueConstraint("public_share_token", name="uq_folders_public_share_token"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_folders_name_nonempty"),
        sa.CheckConstraint(
            "parent_folder_id IS NULL OR parent_folder_id <> id",
            name="ck_folders_not_own_parent",
        ),
        sa.CheckConstraint(_PUBLIC_TOKEN_CHECK, name="ck_folders_public_token"),
    )

    # ── notes ──────────────────────────────────────────────────────────────
    op.create_table(
        "notes",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content_markdown", sa.Text(), nullable=True),
        sa.Column(
            "folder_id",
            sa.String(36),
            sa.ForeignKey("folders.id", ondelete="SET NULL", name="fk_notes_folder"),
            nullable=True,
        ),
        sa.Column(
            "owner_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_notes_owner"),
            nullable=False,
        ),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")),
        sa.Column("public_share_token", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_notes"),
        sa.UniqueConstraint("public_share_token", name="uq_notes_public_share_token"),
        sa.CheckConstraint("LENGTH(TRIM(title)) > 0", name="ck_notes_title_nonempty"),
        sa.CheckConstraint(_PUBLIC_TOKEN_CHECK, name="ck_notes_public_token"),
    )

    # ── permissions ────────────────────────────────────────────────────────
    # entity_id is polymorphic (note or folder) and has no FK.
    op.create_table(
        "permissions",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_permissions_user"),
            nullable=False,
        ),
        sa.Column("entity_type", sa.String(16), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("access_level", sa.String(16), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_permissions"),
        sa.UniqueConstraint(
            "user_id", "entity_type", "entity_id",
            name="uq_permissions_user_entity",
        ),
        sa.CheckConstraint(
            "entity_type IN ('note', 'folder')",
            name="ck_permissions_entity_type",
        ),
        sa.CheckConstraint(
            "access_level IN ('view', 'edit')",
            name="ck_permissions_access_level",
        ),
    )

    # ── invitations ────────────────────────────────────────────────────────
    op.create_table(
        "invitations",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column(
            "inviter_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_invitations_inviter"),
            nullable=False,
        ),
        sa.Column("invitee_email", sa.String(255), nullable=False),
        sa.Column("entity_type", sa.String(16), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("access_level", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_invitations"),
        sa.UniqueConstraint("token", name="uq_invitations_token"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined')",
            name="ck_invitations_status",
        ),
        sa.CheckConstraint(
            "access_level IN ('view', 'edit')",
            name="ck_invitations_access_level",
        ),
    )

    # ── revoked_sessions ───────────────────────────────────────────────────
    # Refresh-token denylist, keyed by the token's `sid` claim.
    op.create_table(
        "revoked_sessions",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_revoked_sessions_user"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "revoked_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_revoked_sessions"),
        sa.UniqueConstraint("session_id", name="uq_revoked_sessions_session_id"),
    )

    # ── Indexes ────────────────────────────────────────────────────────────
    op.create_index("idx_folders_parent", "folders", ["parent_folder_id"])
    op.create_index("idx_folders_owner", "folders", ["owner_id"])
    op.create_index("idx_notes_folder", "notes", ["folder_id"])
    op.create_index("idx_notes_owner", "notes", ["owner_id"])
    op.create_index("idx_permissions_user", "permissions", ["user_id"])
    op.create_index("idx_permissions_entity", "permissions", ["entity_type", "entity_id"])
    op.create_index("idx_invitations_invitee", "invitations", ["invitee_email"])
    op.create_index("idx_revoked_sessions_user", "revoked_sessions", ["user_id"])


def downgrade() -> None:
    """Local development reset only. Prefer a corrective migration in production."""
    op.drop_index("idx_revoked_sessions_user", table_name="revoked_sessions")
    op.drop_index("idx_invitations_invitee",   table_name="invitations")
    op.drop_index("idx_permissions_entity",    table_name="permissions")
    op.drop_index("idx_permissions_user",      table_name="permissions")
    op.drop_index("idx_notes_owner",           table_name="notes")
    op.drop_index("idx_notes_folder",          table_name="notes")
    op.drop_index("idx_folders_owner",         table_name="folders")
    op.drop_index("idx_folders_parent",        table_name="folders")

    op.drop_table("revoked_sessions")
    op.drop_table("invitations")
    op.drop_table("permissions")
    op.drop_table("notes")
    op.drop_table("folders")
    op.drop_table("users")
