# backend/wsgi.py
from invoicehub import create_app

app = create_app()
