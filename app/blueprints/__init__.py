"""
Construction Ops Platform
Blueprint registry.

    health_bp           /api/v1/health/*
    project_status_bp   /api/v1/projects/<id>/...
    schedule_status_bp  /api/v1/schedule-projects/<id>/...
"""
