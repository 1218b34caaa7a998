# backend/wsgi.py
from asset_tracker import create_app

app = create_app()
