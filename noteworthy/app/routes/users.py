"""
routes/users.py — Current-user profile.

Endpoints (base url_prefix=/api/v1/users):
  GET    /users/me   → 200
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from noteworthy.app.extensions import db
from noteworthy.app.middleware.auth_middleware import require_auth
from noteworthy.app.services import auth_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /users/me — Profile of the token's user, read from the database."""
    result = auth_service.get_current_user(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
