# Overview: WSGI entry point (FLASK_APP=wsgi.py).

from tillpoint import create_app

app = create_app()
