# backend/wsgi.py
from tarpprint import create_app

app = create_app()
