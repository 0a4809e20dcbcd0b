"""
Unit tests for folder tree helpers: would_create_cycle() and build_path().

Pure functions over plain dicts. The corrupt-data cases build maps that the
database would never hold, to prove neither helper can loop forever.
"""

from __future__ import annotations

import logging

import pytest

from noteworthy.app.services.folder_service import (
    ROOT_PATH,
    FolderNode,
    build_path,
    would_create_cycle,
)


# Work
# └── Projects
#     └── Alpha
# Personal
TREE = {
    "work":     None,
    "projects": "work",
    "alpha":    "projects",
    "personal": None,
}

NODES = {
    "work":     FolderNode("Work", None),
    "projects": FolderNode("Projects", "work"),
    "alpha":    FolderNode("Alpha", "projects"),
    "personal": FolderNode("Personal", None),
}


# ═══════════════════════════════════════════════════════════════════════════
# would_create_cycle
# ═══════════════════════════════════════════════════════════════════════════

class TestWouldCreateCycle:

    def test_move_to_root_never_cycles(self):
        assert would_create_cycle("work", None, TREE) is False

    def test_self_parent_is_a_cycle(self):
        assert would_create_cycle("work", "work", TREE) is True

    def test_under_own_child_is_a_cycle(self):
        assert would_create_cycle("work", "projects", TREE) is True

    def test_under_own_grandchild_is_a_cycle(self):
        assert would_create_cycle("work", "alpha", TREE) is True

    def test_sibling_subtree_is_fine(self):
        assert would_create_cycle("personal", "alpha", TREE) is False

    def test_moving_deeper_within_ancestors_is_fine(self):
        # alpha under work: work is an ancestor of alpha, not a descendant.
        assert would_create_cycle("alpha", "work", TREE) is False

    def test_unknown_parent_is_treated_as_root(self):
        assert would_create_cycle("work", "ghost", TREE) is False

    def test_accepts_a_callable_lookup(self):
        calls = []

        def parent_of(folder_id):
            calls.append(folder_id)
            return TREE.get(folder_id)

        assert would_create_cycle("work", "alpha", parent_of) is True
        assert calls == ["alpha", "projects"]

    def test_existing_unrelated_loop_terminates(self, caplog):
        corrupt = {"x": "y", "y": "x", "mover": None}

        with caplog.at_level(logging.WARNING, logger="noteworthy.app.services.folder_service"):
            assert would_create_cycle("mover", "x", corrupt) is False

        assert "Existing folder cycle" in caplog.text

    def test_existing_loop_through_the_mover_is_a_cycle(self):
        corrupt = {"a": "b", "b": "a"}
        assert would_create_cycle("a", "b", corrupt) is True

    def test_deep_chain(self):
        depth = 500
        chain = {f"f{i}": (f"f{i - 1}" if i else None) for i in range(depth)}
        assert would_create_cycle("f0", f"f{depth - 1}", chain) is True
        assert would_create_cycle(f"f{depth - 1}", "f0", chain) is False


# ═══════════════════════════════════════════════════════════════════════════
# build_path
# ═══════════════════════════════════════════════════════════════════════════

class TestBuildPath:

    @pytest.mark.parametrize("folder_id", [None, ""])
    def test_no_folder_is_root(self, folder_id):
        assert build_path(NODES, folder_id) == ROOT_PATH

    def test_top_level_folder(self):
        assert build_path(NODES, "work") == "Work"

    def test_nested_folder(self):
        assert build_path(NODES, "alpha") == "Work / Projects / Alpha"

    def test_missing_folder_is_incomplete(self):
        assert build_path(NODES, "ghost") == "Incomplete path: "

    def test_missing_ancestor_is_incomplete(self):
        nodes = {"orphan": FolderNode("Orphan", "deleted")}
        assert build_path(nodes, "orphan") == "Incomplete path: Orphan"

    def test_self_loop_is_reported(self):
        nodes = {"c": FolderNode("CycleFolder", "c")}
        assert build_path(nodes, "c") == "Cycle detected: CycleFolder"

    def test_two_node_loop_is_reported(self):
        nodes = {
            "a": FolderNode("A", "b"),
            "b": FolderNode("B", "a"),
        }
        assert build_path(nodes, "a") == "Cycle detected: B / A"

    def test_names_with_separator_characters_are_kept_verbatim(self):
        nodes = {
            "p": FolderNode("Q1 / Q2", None),
            "c": FolderNode("Notes", "p"),
        }
        assert build_path(nodes, "c") == "Q1 / Q2 / Notes"
