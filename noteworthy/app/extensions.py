"""
extensions.py — Flask extension singletons.

SQLAlchemy and marshmallow are created here without an app and bound inside
the factory with init_app(app), so tests can build isolated app instances:

    from noteworthy.app.extensions import db, ma

Services never import `db` directly; routes pass `db.session` into them as
the `session` argument.
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Validation schemas in app/schemas/ inherit from marshmallow.Schema, not
# ma.Schema: ma.Schema needs an app context, which the unit tests do not have.
ma = Marshmallow()
