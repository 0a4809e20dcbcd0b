"""Add folder cycle trigger (acyclic folder tree, DB enforcement layer).

Revision: 002_add_folder_cycle_trigger
Created:  2026-10-17

The folder tree must stay acyclic. folder_service.move_folder() checks every
reparent under row locks; this trigger is the last line of defence for
writes that bypass the service layer.

A CHECK constraint cannot do this: it sees one row at a time, while a cycle
is a property of the chain of ancestors. A BEFORE row-level trigger on
folders walks that chain with a recursive CTE.

Trigger design:
  Function : fn_check_folder_cycle()
    - Runs only when parent_folder_id is non-null and (on UPDATE) changed.
    - Walks up from NEW.parent_folder_id. UNION (not UNION ALL) stops the
      recursion if it meets an already-corrupt loop elsewhere.
    - Raises EXCEPTION (SQLSTATE '23514' — check_violation) if NEW.id is
      among the ancestors.

  Trigger  : trg_folders_cycle_check
    - BEFORE INSERT OR UPDATE OF parent_folder_id ON folders
    - FOR EACH ROW

Append-only:
  This file must NEVER be edited after it has been applied to any database.
"""

from __future__ import annotations

from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "002_add_folder_cycle_trigger"
down_revision: str | None = "001_initial_schema"
branch_labels: tuple | None = None
depends_on: tuple | None = None


# ── SQL definitions ────────────────────────────────────────────────────────

_CREATE_FUNCTION = """
CREATE OR REPLACE FUNCTION fn_check_folder_cycle()
RETURNS TRIGGER
LANGUAGE plpgsql
AS $$
BEGIN
    IF NEW.parent_folder_id IS NULL THEN
        RETURN NEW;
    END IF;

    IF TG_OP = 'UPDATE'
       AND NEW.parent_folder_id IS NOT DISTINCT FROM OLD.parent_folder_id THEN
        RETURN NEW;
    END IF;

    IF EXISTS (
        WITH RECURSIVE ancestors(id) AS (
            SELECT NEW.parent_folder_id
            UNION
            SELECT f.parent_folder_id
            FROM folders f
            JOIN ancestors a ON f.id = a.id
            WHERE f.parent_folder_id IS NOT NULL
        )
        SELECT 1 FROM ancestors WHERE id = NEW.id
    ) THEN
        RAISE EXCEPTION
            'Folder cycle: % cannot be placed under %',
            NEW.id, NEW.parent_folder_id
            USING ERRCODE = '23514';  -- check_violation
    END IF;

    RETURN NEW;
END;
$$;
"""

_CREATE_TRIGGER = """
CREATE TRIGGER trg_folders_cycle_check
    BEFORE INSERT OR UPDATE OF parent_folder_id
    ON folders
    FOR EACH ROW
    EXECUTE FUNCTION fn_check_folder_cycle();
"""

_DROP_TRIGGER = "DROP TRIGGER IF EXISTS trg_folders_cycle_check ON folders;"
_DROP_FUNCTION = "DROP FUNCTION IF EXISTS fn_check_folder_cycle();"


def upgrade() -> None:
    op.execute(_CREATE_FUNCTION)
    op.execute(_CREATE_TRIGGER)


def downgrade() -> None:
    """Trigger first (it references the function), then the function."""
    op.execute(_DROP_TRIGGER)
    op.execute(_DROP_FUNCTION)
