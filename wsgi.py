"""
WSGI / Flask CLI entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi seed-demo --email cc@example.com
    flask --app wsgi db upgrade
"""

from buildboard import create_app

app = create_app()
