# backend/wsgi.py
from billmaster import create_app

app = create_app()
