# backend/wsgi.py
from payables import create_app

app = create_app()
