"""
routes/sharing.py — Permissions, invitations, public links and search.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Endpoints (registered under /api/v1):
  GET    /permissions?entity_type=&entity_id=   → 200  who has access
  POST   /permissions                           → 201 created / 200 updated
  PATCH  /permissions/:id                       → 200  change access level
  DELETE /permissions/:id                       → 200  revoke
  POST   /invitations                           → 201  invite by email
  GET    /invitations/pending                   → 200  caller's open invitations
  POST   /invitations/:id/accept                → 200
  POST   /invitations/:id/decline               → 200
  GET    /public/notes/:token                   → 200  no auth
  GET    /public/folders/:token                 → 200  no auth
  GET    /search?query=&limit=                  → 200
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from noteworthy.app.errors import WarningCode
from noteworthy.app.extensions import db
from noteworthy.app.middleware.auth_middleware import require_auth
from noteworthy.app.schemas.sharing_schema import (
    CreateInvitationSchema,
    EntityQuerySchema,
    GrantPermissionSchema,
    SearchQuerySchema,
    UpdatePermissionSchema,
)
from noteworthy.app.services import (
    invitation_service,
    permission_service,
    search_service,
    share_service,
)

sharing_bp = Blueprint("sharing", __name__)


# ── Permissions ────────────────────────────────────────────────────────────

@sharing_bp.route("/permissions", methods=["GET"])
@require_auth
def list_permissions():
    query = EntityQuerySchema().load(request.args.to_dict())
    result = permission_service.list_access(
        entity_type=query["entity_type"],
        entity_id=query["entity_id"],
        identity=g.identity,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@sharing_bp.route("/permissions", methods=["POST"])
@require_auth
def grant_permission():
    """
    POST /permissions — Upsert a grant. 201 when a new grant was created,
    200 when an existing one was updated or already matched.
    """
    data = GrantPermissionSchema().load(request.get_json(force=True) or {})
    result, outcome = permission_service.grant_permission(
        user_id=data["user_id"],
        entity_type=data["entity_type"],
        entity_id=data["entity_id"],
        access_level=data["access_level"],
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()

    warnings = []
    if outcome == permission_service.UNCHANGED:
        warnings.append({
            "code": WarningCode.PERMISSION_UNCHANGED,
            "message": "The user already had this access level.",
        })
    status = 201 if outcome == permission_service.CREATED else 200
    return jsonify({"data": result, "warnings": warnings}), status


@sharing_bp.route("/permissions/<string:permission_id>", methods=["PATCH"])
@require_auth
def update_permission(permission_id: str):
    data = UpdatePermissionSchema().load(request.get_json(force=True) or {})
    result = permission_service.update_permission(
        permission_id=permission_id,
        access_level=data["access_level"],
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@sharing_bp.route("/permissions/<string:permission_id>", methods=["DELETE"])
@require_auth
def revoke_permission(permission_id: str):
    permission_service.revoke_permission(
        permission_id=permission_id,
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"id": permission_id}, "warnings": []}), 200


# ── Invitations ────────────────────────────────────────────────────────────

@sharing_bp.route("/invitations", methods=["POST"])
@require_auth
def create_invitation():
    data = CreateInvitationSchema().load(request.get_json(force=True) or {})
    result = invitation_service.create_invitation(
        invitee_email=data["invitee_email"],
        entity_type=data["entity_type"],
        entity_id=data["entity_id"],
        access_level=data["access_level"],
        identity=g.identity,
        session=db.session,
        ttl=current_app.config["INVITATION_TTL"],
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@sharing_bp.route("/invitations/pending", methods=["GET"])
@require_auth
def list_pending_invitations():
    result = invitation_service.list_pending_invitations(
        identity=g.identity,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@sharing_bp.route("/invitations/<string:invitation_id>/accept", methods=["POST"])
@require_auth
def accept_invitation(invitation_id: str):
    result = invitation_service.accept_invitation(
        invitation_id=invitation_id,
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@sharing_bp.route("/invitations/<string:invitation_id>/decline", methods=["POST"])
@require_auth
def decline_invitation(invitation_id: str):
    result = invitation_service.decline_invitation(
        invitation_id=invitation_id,
        identity=g.identity,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


# ── Public links (no auth) ─────────────────────────────────────────────────

@sharing_bp.route("/public/notes/<string:token>", methods=["GET"])
def get_public_note(token: str):
    result = share_service.get_public_note(token=token, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@sharing_bp.route("/public/folders/<string:token>", methods=["GET"])
def get_public_folder(token: str):
    result = share_service.get_public_folder(token=token, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


# ── Search ─────────────────────────────────────────────────────────────────

@sharing_bp.route("/search", methods=["GET"])
@require_auth
def search():
    query = SearchQuerySchema().load(request.args.to_dict())
    result = search_service.search(
        query=query["query"],
        identity=g.identity,
        session=db.session,
        limit=query["limit"],
    )
    return jsonify({"data": result, "warnings": []}), 200
