# backend/wsgi.py
from concessions import create_app

app = create_app()
