"""
routes/folders.py — Folder route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Endpoints (base url_prefix=/api/v1/folders):
  POST   /folders              → 201  create
  GET    /folders              → 200  list caller's folders under a parent
  GET    /folders/:id          → 200  get with path (public folders readable anonymously)
  PATCH  /folders/:id          → 200  rename and/or move
  DELETE /folders/:id          → 200  delete (must be empty)
  PUT    /folders/:id/public   → 200  toggle public link (owner only)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from noteworthy.app.extensions import db
from noteworthy.app.middleware.auth_middleware import optional_auth, require_auth
from noteworthy.app.models.permission import EntityType
from noteworthy.app.schemas.folder_schema import (
    CreateFolderSchema,
    ListFoldersSchema,
    SetPublicSchema,
    UpdateFolderSchema,
)
from noteworthy.app.services import folder_service, share_service

folders_bp = Blueprint("folders", __name__)


@folders_bp.route("", methods=["POST"])
@require_auth
def create_folder():
    """POST /folders — Create a folder at Root or under one of the caller's folders."""
    data = CreateFolderSchema().load(request.get_json(force=True) or {})
    result = folder_service.create_folder(
        name=data["name"],
        parent_id=data["parent_id"],
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@folders_bp.route("", methods=["GET"])
@require_auth
def list_folders():
    """GET /folders?parent_id=&sort_by=&sort_order="""
    query = ListFoldersSchema().load(request.args.to_dict())
    result = folder_service.list_folders(
        identity=g.identity,
        session=db.session,
        parent_id=query["parent_id"],
        sort_by=query["sort_by"],
        sort_order=query["sort_order"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@folders_bp.route("/<string:folder_id>", methods=["GET"])
@optional_auth
def get_folder(folder_id: str):
    result = folder_service.get_folder(
        folder_id=folder_id,
        identity=g.identity,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@folders_bp.route("/<string:folder_id>", methods=["PATCH"])
@require_auth
def update_folder(folder_id: str):
    """PATCH /folders/:id — Only the fields present in the body change."""
    data = UpdateFolderSchema().load(request.get_json(force=True) or {})
    result = folder_service.update_folder(
        folder_id=folder_id,
        identity=g.identity,
        session=db.session,
        **data,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@folders_bp.route("/<string:folder_id>", methods=["DELETE"])
@require_auth
def delete_folder(folder_id: str):
    folder_service.delete_folder(
        folder_id=folder_id,
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"id": folder_id}, "warnings": []}), 200


@folders_bp.route("/<string:folder_id>/public", methods=["PUT"])
@require_auth
def set_folder_public(folder_id: str):
    data = SetPublicSchema().load(request.get_json(force=True) or {})
    result = share_service.set_public(
        resource_type=EntityType.FOLDER,
        resource_id=folder_id,
        is_public=data["is_public"],
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
