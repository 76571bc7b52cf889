"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in app/__init__.py with no default limits
and ``tenant_rate_limit_key`` as its key function; this module applies
limits per route category.

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

PROJECT_STATUS_LIMIT = "60/minute"
SCHEDULE_STATUS_LIMIT = "200/minute"


def tenant_rate_limit_key():
    """Rate limit key: tenant id if the caller supplied one, else remote IP."""
    tenant_id = getattr(g, "tenant_id", None) or flask_request.headers.get("X-Company-Id")
    if tenant_id:
        return f"tenant:{tenant_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per tenant, falling back to remote IP):
        - Project status:   60/minute  (one write cascades to every schedule project)
        - Schedule status:  200/minute
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("project_status")
    if bp:
        limiter.limit(PROJECT_STATUS_LIMIT)(bp)

    bp = app.blueprints.get("schedule_status")
    if bp:
        limiter.limit(SCHEDULE_STATUS_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: project status=%s, schedule status=%s",
        PROJECT_STATUS_LIMIT, SCHEDULE_STATUS_LIMIT,
    )
