"""
Construction Ops Platform
Shared SQLAlchemy extension instance.

Every model module imports ``db`` from here so that a single metadata
registry backs ``db.create_all()`` and Flask-Migrate autogeneration.
"""

import uuid

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _uuid() -> str:
    """Default primary key factory for opaque string identifiers."""
    return str(uuid.uuid4())
