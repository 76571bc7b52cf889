"""
Identity Context Middleware — caller identity from the upstream auth layer.

Authentication happens upstream. The auth gateway forwards two headers on
every API request:

    X-User-Id     acting user
    X-Company-Id  tenant (company) the user is scoped to

This middleware copies them into ``g.user_id`` / ``g.tenant_id``. It does
NOT reject requests; routes that need identity use ``@identity_required``.

Usage:
    @bp.route("/projects/<project_id>/status-summary", methods=["GET"])
    @identity_required
    def status_summary(project_id):
        tenant_id = g.tenant_id
"""

import functools
import logging

from flask import g, request

from app.core.exceptions import AuthenticationRequiredError

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"
TENANT_HEADER = "X-Company-Id"


def init_identity_context(app):
    """Register identity context middleware as a before_request hook."""

    @app.before_request
    def _identity_context():
        g.user_id = (request.headers.get(USER_HEADER) or "").strip() or None
        g.tenant_id = (request.headers.get(TENANT_HEADER) or "").strip() or None
        return None

    logger.info("Identity context middleware installed")


def identity_required(f):
    """Decorator: require both identity headers, else 401."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if not getattr(g, "user_id", None) or not getattr(g, "tenant_id", None):
            logger.warning(
                "Missing identity headers on %s %s", request.method, request.path,
            )
            raise AuthenticationRequiredError()
        return f(*args, **kwargs)
    return decorated
