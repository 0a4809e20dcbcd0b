"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, so tests can build isolated
         app instances and Alembic can import the models without a server.

Responsibilities:
  1. Load configuration from config_by_name[config_name] and validate it
  2. Set the log level
  3. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  4. Register all route blueprints under /api/v1
  5. Register global error handlers (AppError → JSON, Exception → 500)

Note on model imports:
  All model modules are imported inside create_app() so that SQLAlchemy's
  metadata is complete before create_all() or Alembic inspects it.
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from noteworthy.config import config_by_name, validate_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".

    Raises:
        ValueError: signing secrets missing/identical, or no DATABASE_URL
                    in production (config.validate_config).
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    validate_config(app)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("noteworthy").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # ── Extensions ─────────────────────────────────────────────────────────
    from noteworthy.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from noteworthy.app.models import (  # noqa: F401
            folder,
            invitation,
            note,
            permission,
            revoked_session,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under /api/v1.

    sharing_bp sits directly on /api/v1 because it owns several top-level
    paths (/permissions, /invitations, /public, /search).
    """
    from noteworthy.app.routes.auth import auth_bp
    from noteworthy.app.routes.folders import folders_bp
    from noteworthy.app.routes.notes import notes_bp
    from noteworthy.app.routes.sharing import sharing_bp
    from noteworthy.app.routes.users import users_bp

    app.register_blueprint(auth_bp,    url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp,   url_prefix="/api/v1/users")
    app.register_blueprint(folders_bp, url_prefix="/api/v1/folders")
    app.register_blueprint(notes_bp,   url_prefix="/api/v1/notes")
    app.register_blueprint(sharing_bp, url_prefix="/api/v1")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError           → error envelope with the error's HTTP status
      ValidationError    → first schema error as MISSING_FIELD / INVALID_FIELD (400)
      ConfigurationError → CRITICAL log, generic INTERNAL_ERROR (500)
      HTTPException      → werkzeug status kept (unknown route, bad JSON, 405)
      Exception          → INTERNAL_ERROR (500); traceback to the app logger

    Stack traces never leave the server.
    """
    from noteworthy.app.errors import AppError, ConfigurationError, ErrorCode

    internal_error = {
        "error": {
            "code": ErrorCode.INTERNAL_ERROR,
            "message": "An unexpected error occurred. Please try again later.",
        }
    }

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Routes never catch AppError — they let it propagate here.
        AuthError reasons are logged by the auth middleware, not here.
        """
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """Returns the FIRST field error only: one error, not many."""
        messages = error.messages  # e.g. {"name": ["Missing data for required field."]}

        field = None
        raw_message = "Invalid input."

        if isinstance(messages, dict) and messages:
            field_name, field_errors = next(iter(messages.items()))
            field = field_name if field_name != "_schema" else None
            if isinstance(field_errors, list):
                raw_message = field_errors[0] if field_errors else "Invalid value."
            elif isinstance(field_errors, dict):
                # Nested schema: {"0": [...]} or similar.
                raw_message = str(next(iter(field_errors.values()), "Invalid value."))
            else:
                raw_message = str(field_errors)
        elif isinstance(messages, list) and messages:
            raw_message = str(messages[0])

        code = (
            ErrorCode.MISSING_FIELD
            if str(raw_message).startswith("Missing data for required field")
            else ErrorCode.INVALID_FIELD
        )

        response_body = {"error": {"code": code, "message": raw_message}}
        if field is not None:
            response_body["error"]["field"] = field
        return jsonify(response_body), 400

    @app.errorhandler(ConfigurationError)
    def handle_configuration_error(error: ConfigurationError):
        """A deployment problem, not the client's. Never reported as 401."""
        app.logger.critical(
            "Configuration error while handling %s %s: %s",
            request.method, request.path, error,
        )
        return jsonify(internal_error), 500

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({
            "error": {
                "code": error.name.upper().replace(" ", "_"),
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify(internal_error), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development (DEBUG/TESTING).

    Credentials are allowed so the refresh cookie reaches /auth/session/*
    from a dev frontend on another port.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow and origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response
