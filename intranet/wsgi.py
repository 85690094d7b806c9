"""WSGI entrypoint: ``gunicorn intranet.wsgi:app``."""

from intranet import create_app

app = create_app()
