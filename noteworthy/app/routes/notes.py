"""
routes/notes.py — Note route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Endpoints (base url_prefix=/api/v1/notes):
  POST   /notes              → 201  create
  GET    /notes              → 200  caller's own notes (optionally by folder)
  GET    /notes/shared       → 200  notes shared with the caller
  GET    /notes/:id          → 200  get (public notes readable anonymously)
  PATCH  /notes/:id          → 200  update (owner or edit grantee)
  DELETE /notes/:id          → 200  delete (owner only)
  PUT    /notes/:id/public   → 200  toggle public link (owner only)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from noteworthy.app.extensions import db
from noteworthy.app.middleware.auth_middleware import optional_auth, require_auth
from noteworthy.app.models.permission import EntityType
from noteworthy.app.schemas.folder_schema import SetPublicSchema
from noteworthy.app.schemas.note_schema import CreateNoteSchema, ListNotesSchema, UpdateNoteSchema
from noteworthy.app.services import note_service, share_service

notes_bp = Blueprint("notes", __name__)


@notes_bp.route("", methods=["POST"])
@require_auth
def create_note():
    data = CreateNoteSchema().load(request.get_json(force=True) or {})
    result = note_service.create_note(
        title=data["title"],
        content_markdown=data["content_markdown"],
        folder_id=data["folder_id"],
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@notes_bp.route("", methods=["GET"])
@require_auth
def list_notes():
    """GET /notes?folder_id= — Omit folder_id for all of the caller's notes."""
    query = ListNotesSchema().load(request.args.to_dict())
    result = note_service.list_notes(
        identity=g.identity,
        session=db.session,
        folder_id=query["folder_id"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@notes_bp.route("/shared", methods=["GET"])
@require_auth
def list_shared_notes():
    result = note_service.list_shared_notes(
        identity=g.identity,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@notes_bp.route("/<string:note_id>", methods=["GET"])
@optional_auth
def get_note(note_id: str):
    """GET /notes/:id — Anonymous callers only see public notes."""
    result = note_service.get_note(
        note_id=note_id,
        identity=g.identity,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@notes_bp.route("/<string:note_id>", methods=["PATCH"])
@require_auth
def update_note(note_id: str):
    data = UpdateNoteSchema().load(request.get_json(force=True) or {})
    result = note_service.update_note(
        note_id=note_id,
        identity=g.identity,
        session=db.session,
        **data,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@notes_bp.route("/<string:note_id>", methods=["DELETE"])
@require_auth
def delete_note(note_id: str):
    note_service.delete_note(
        note_id=note_id,
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"id": note_id}, "warnings": []}), 200


@notes_bp.route("/<string:note_id>/public", methods=["PUT"])
@require_auth
def set_note_public(note_id: str):
    data = SetPublicSchema().load(request.get_json(force=True) or {})
    result = share_service.set_public(
        resource_type=EntityType.NOTE,
        resource_id=note_id,
        is_public=data["is_public"],
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
