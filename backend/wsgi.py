# backend/wsgi.py
# FLASK_APP=wsgi.py for `flask` CLI commands; gunicorn/waitress entry point `wsgi:app`.
from sealtrack import create_app

app = create_app()
