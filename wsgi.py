"""
WSGI / Flask-Migrate entry point.

Usage:
    flask db migrate -m "description"
    flask db upgrade
    flask seed-demo
    gunicorn wsgi:app
"""

from app import create_app

app = create_app()
