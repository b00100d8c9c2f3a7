# backend/wsgi.py
from stockai import create_app

app = create_app()
