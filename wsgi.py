"""
Flask-Migrate / gunicorn entry point.

Usage:
    flask db upgrade
    flask extract --module FI,CO
    flask verify-audit
    gunicorn wsgi:app
"""

from landscape import create_app

app = create_app()
