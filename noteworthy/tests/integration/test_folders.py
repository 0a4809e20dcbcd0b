"""
tests/integration/test_folders.py — Folder CRUD, hierarchy and moves.

Endpoints covered:
  POST   /folders            → 201
  GET    /folders            → 200
  GET    /folders/:id        → 200 (path, children_count, notes_count)
  PATCH  /folders/:id        → 200 (rename and/or move)
  DELETE /folders/:id        → 200

Error cases:
  FOLDER_CYCLE           422 — move under itself or a descendant
  FOLDER_NOT_EMPTY       422 — delete with children or notes
  DUPLICATE_FOLDER_NAME  409 — sibling with the same name
  RESOURCE_NOT_FOUND     404 — missing or another user's folder
"""

from __future__ import annotations

import pytest

from .conftest import auth_headers, grant, make_folder, make_note, register, set_public


@pytest.fixture
def alice(client):
    return register(client, email="alice@test.com")


@pytest.fixture
def bob(client):
    return register(client, email="bob@test.com")


def _patch(client, token, folder_id, **body):
    return client.patch(f"/api/v1/folders/{folder_id}", json=body, headers=auth_headers(token))


# ═══════════════════════════════════════════════════════════════════════════
# Create / list / get
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateFolder:

    def test_create_at_root(self, client, alice):
        folder = make_folder(client, alice["access_token"], name="Work")
        assert folder["name"] == "Work"
        assert folder["parent_id"] is None
        assert folder["owner_id"] == alice["user"]["id"]
        assert folder["is_public"] is False
        assert folder["public_share_token"] is None

    def test_create_nested(self, client, alice):
        token = alice["access_token"]
        parent = make_folder(client, token, name="Work")
        child = make_folder(client, token, name="Projects", parent_id=parent["id"])
        assert child["parent_id"] == parent["id"]

    def test_duplicate_sibling_name_is_409(self, client, alice):
        token = alice["access_token"]
        make_folder(client, token, name="Work")
        resp = client.post("/api/v1/folders", json={"name": "Work"}, headers=auth_headers(token))
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "DUPLICATE_FOLDER_NAME"

    def test_same_name_in_different_parents_is_fine(self, client, alice):
        token = alice["access_token"]
        a = make_folder(client, token, name="A")
        b = make_folder(client, token, name="B")
        make_folder(client, token, name="Archive", parent_id=a["id"])
        make_folder(client, token, name="Archive", parent_id=b["id"])

    def test_parent_owned_by_someone_else_is_404(self, client, alice, bob):
        bobs = make_folder(client, bob["access_token"], name="Private")
        resp = client.post(
            "/api/v1/folders",
            json={"name": "Sneaky", "parent_id": bobs["id"]},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["field"] == "parent_id"

    def test_blank_name_is_400(self, client, alice):
        resp = client.post("/api/v1/folders", json={"name": "   "}, headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "name"

    def test_requires_auth(self, client):
        assert client.post("/api/v1/folders", json={"name": "Work"}).status_code == 401


class TestListAndGetFolder:

    def test_list_root_only_shows_callers_top_level(self, client, alice, bob):
        token = alice["access_token"]
        work = make_folder(client, token, name="Work")
        make_folder(client, token, name="Home")
        make_folder(client, token, name="Nested", parent_id=work["id"])
        make_folder(client, bob["access_token"], name="Bobs")

        resp = client.get("/api/v1/folders", headers=auth_headers(token))

        assert resp.status_code == 200
        assert [f["name"] for f in resp.get_json()["data"]] == ["Home", "Work"]

    def test_list_children_sorted_desc(self, client, alice):
        token = alice["access_token"]
        work = make_folder(client, token, name="Work")
        for name in ("a", "c", "b"):
            make_folder(client, token, name=name, parent_id=work["id"])

        resp = client.get(
            f"/api/v1/folders?parent_id={work['id']}&sort_order=desc",
            headers=auth_headers(token),
        )
        assert [f["name"] for f in resp.get_json()["data"]] == ["c", "b", "a"]

    def test_list_parent_null_string_means_root(self, client, alice):
        token = alice["access_token"]
        make_folder(client, token, name="Work")
        resp = client.get("/api/v1/folders?parent_id=null", headers=auth_headers(token))
        assert [f["name"] for f in resp.get_json()["data"]] == ["Work"]

    def test_get_folder_has_path_and_counts(self, client, alice):
        token = alice["access_token"]
        work = make_folder(client, token, name="Work")
        projects = make_folder(client, token, name="Projects", parent_id=work["id"])
        make_folder(client, token, name="Alpha", parent_id=projects["id"])
        make_note(client, token, title="Plan", folder_id=projects["id"])

        resp = client.get(f"/api/v1/folders/{projects['id']}", headers=auth_headers(token))

        data = resp.get_json()["data"]
        assert data["path"] == "Work / Projects"
        assert data["children_count"] == 1
        assert data["notes_count"] == 1

    def test_get_foreign_folder_is_404(self, client, alice, bob):
        bobs = make_folder(client, bob["access_token"], name="Bobs")
        resp = client.get(f"/api/v1/folders/{bobs['id']}", headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 404

    def test_get_private_folder_anonymously_is_401(self, client, alice):
        work = make_folder(client, alice["access_token"], name="Work")
        assert client.get(f"/api/v1/folders/{work['id']}").status_code == 401

    def test_grantee_sees_folder_without_share_token(self, client, alice, bob):
        work = make_folder(client, alice["access_token"], name="Work")
        grant(client, alice["access_token"], bob["user"]["id"], "folder", work["id"], "view")

        resp = client.get(f"/api/v1/folders/{work['id']}", headers=auth_headers(bob["access_token"]))

        assert resp.status_code == 200
        assert "public_share_token" not in resp.get_json()["data"]

    def test_grantee_sees_no_private_ancestors_or_children(self, client, alice, bob):
        token = alice["access_token"]
        plans = make_folder(client, token, name="Layoff Plan Q3")
        shared = make_folder(client, token, name="Shared", parent_id=plans["id"])
        make_folder(client, token, name="Hidden", parent_id=shared["id"])
        visible = make_folder(client, token, name="Visible", parent_id=shared["id"])
        make_note(client, token, title="Hidden note", folder_id=shared["id"])
        grant(client, token, bob["user"]["id"], "folder", shared["id"], "view")
        grant(client, token, bob["user"]["id"], "folder", visible["id"], "view")

        data = client.get(
            f"/api/v1/folders/{shared['id']}", headers=auth_headers(bob["access_token"]),
        ).get_json()["data"]

        assert data["path"] == "Shared"
        assert data["children_count"] == 1
        assert data["notes_count"] == 0

    def test_anonymous_reader_of_public_folder_sees_no_private_ancestors(self, client, alice):
        token = alice["access_token"]
        plans = make_folder(client, token, name="Layoff Plan Q3")
        shared = make_folder(client, token, name="Shared", parent_id=plans["id"])
        make_folder(client, token, name="Hidden", parent_id=shared["id"])
        note = make_note(client, token, title="Open note", folder_id=shared["id"])
        set_public(client, token, "folders", shared["id"])
        set_public(client, token, "notes", note["id"])

        resp = client.get(f"/api/v1/folders/{shared['id']}")

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["path"] == "Shared"
        assert data["children_count"] == 0
        assert data["notes_count"] == 1


# ═══════════════════════════════════════════════════════════════════════════
# PATCH: rename and move
# ═══════════════════════════════════════════════════════════════════════════

class TestMoveFolder:

    def test_rename(self, client, alice):
        token = alice["access_token"]
        work = make_folder(client, token, name="Work")
        resp = _patch(client, token, work["id"], name="Job")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["name"] == "Job"

    def test_move_under_sibling(self, client, alice):
        token = alice["access_token"]
        a = make_folder(client, token, name="A")
        b = make_folder(client, token, name="B")

        resp = _patch(client, token, b["id"], parent_id=a["id"])

        assert resp.status_code == 200
        assert resp.get_json()["data"]["parent_id"] == a["id"]
        detail = client.get(f"/api/v1/folders/{b['id']}", headers=auth_headers(token))
        assert detail.get_json()["data"]["path"] == "A / B"

    def test_move_to_root(self, client, alice):
        token = alice["access_token"]
        a = make_folder(client, token, name="A")
        b = make_folder(client, token, name="B", parent_id=a["id"])

        resp = _patch(client, token, b["id"], parent_id=None)

        assert resp.get_json()["data"]["parent_id"] is None

    def test_move_under_itself_is_cycle(self, client, alice):
        token = alice["access_token"]
        a = make_folder(client, token, name="A")

        resp = _patch(client, token, a["id"], parent_id=a["id"])

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "FOLDER_CYCLE"

    def test_move_under_descendant_is_cycle(self, client, alice):
        token = alice["access_token"]
        a = make_folder(client, token, name="A")
        b = make_folder(client, token, name="B", parent_id=a["id"])
        c = make_folder(client, token, name="C", parent_id=b["id"])

        resp = _patch(client, token, a["id"], parent_id=c["id"])

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "FOLDER_CYCLE"
        # nothing changed
        detail = client.get(f"/api/v1/folders/{a['id']}", headers=auth_headers(token))
        assert detail.get_json()["data"]["parent_id"] is None

    def test_move_into_name_clash_is_409(self, client, alice):
        token = alice["access_token"]
        a = make_folder(client, token, name="A")
        make_folder(client, token, name="Archive", parent_id=a["id"])
        loose = make_folder(client, token, name="Archive")

        resp = _patch(client, token, loose["id"], parent_id=a["id"])

        assert resp.status_code == 409

    def test_rename_and_move_checks_new_name_in_new_parent(self, client, alice):
        token = alice["access_token"]
        work = make_folder(client, token, name="Work")
        archive = make_folder(client, token, name="Archive")
        make_folder(client, token, name="Work", parent_id=archive["id"])

        resp = _patch(client, token, work["id"], name="Work-2023", parent_id=archive["id"])

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["name"] == "Work-2023"
        assert data["parent_id"] == archive["id"]

    def test_rename_and_move_into_clash_on_new_name_is_409(self, client, alice):
        token = alice["access_token"]
        work = make_folder(client, token, name="Work")
        archive = make_folder(client, token, name="Archive")
        make_folder(client, token, name="Old Work", parent_id=archive["id"])

        resp = _patch(client, token, work["id"], name="Old Work", parent_id=archive["id"])

        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "DUPLICATE_FOLDER_NAME"

    def test_move_under_foreign_folder_is_404(self, client, alice, bob):
        mine = make_folder(client, alice["access_token"], name="Mine")
        theirs = make_folder(client, bob["access_token"], name="Theirs")

        resp = _patch(client, alice["access_token"], mine["id"], parent_id=theirs["id"])

        assert resp.status_code == 404

    def test_editor_cannot_move_under_their_own_folder(self, client, alice, bob):
        shared = make_folder(client, alice["access_token"], name="Shared")
        grant(client, alice["access_token"], bob["user"]["id"], "folder", shared["id"], "edit")
        bobs = make_folder(client, bob["access_token"], name="Bobs")

        resp = _patch(client, bob["access_token"], shared["id"], parent_id=bobs["id"])

        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "parent_id"

    def test_viewer_cannot_rename(self, client, alice, bob):
        shared = make_folder(client, alice["access_token"], name="Shared")
        grant(client, alice["access_token"], bob["user"]["id"], "folder", shared["id"], "view")

        resp = _patch(client, bob["access_token"], shared["id"], name="Mine now")

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"

    def test_empty_patch_is_400(self, client, alice):
        a = make_folder(client, alice["access_token"], name="A")
        assert _patch(client, alice["access_token"], a["id"]).status_code == 400


# ═══════════════════════════════════════════════════════════════════════════
# DELETE
# ═══════════════════════════════════════════════════════════════════════════

class TestDeleteFolder:

    def test_delete_empty_folder(self, client, alice):
        token = alice["access_token"]
        a = make_folder(client, token, name="A")

        resp = client.delete(f"/api/v1/folders/{a['id']}", headers=auth_headers(token))

        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"id": a["id"]}
        assert client.get(f"/api/v1/folders/{a['id']}", headers=auth_headers(token)).status_code == 404

    def test_delete_with_child_folder_is_422(self, client, alice):
        token = alice["access_token"]
        a = make_folder(client, token, name="A")
        make_folder(client, token, name="B", parent_id=a["id"])

        resp = client.delete(f"/api/v1/folders/{a['id']}", headers=auth_headers(token))

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "FOLDER_NOT_EMPTY"

    def test_delete_with_note_is_422(self, client, alice):
        token = alice["access_token"]
        a = make_folder(client, token, name="A")
        make_note(client, token, title="N", folder_id=a["id"])

        resp = client.delete(f"/api/v1/folders/{a['id']}", headers=auth_headers(token))

        assert resp.status_code == 422

    def test_editor_cannot_delete(self, client, alice, bob):
        shared = make_folder(client, alice["access_token"], name="Shared")
        grant(client, alice["access_token"], bob["user"]["id"], "folder", shared["id"], "edit")

        resp = client.delete(f"/api/v1/folders/{shared['id']}", headers=auth_headers(bob["access_token"]))

        assert resp.status_code == 403

    def test_delete_removes_grants(self, client, alice, bob):
        token = alice["access_token"]
        shared = make_folder(client, token, name="Shared")
        grant(client, token, bob["user"]["id"], "folder", shared["id"], "view")

        client.delete(f"/api/v1/folders/{shared['id']}", headers=auth_headers(token))

        resp = client.get(f"/api/v1/folders/{shared['id']}", headers=auth_headers(bob["access_token"]))
        assert resp.status_code == 404
