"""
asgi.py -- ASGI entry point for vendportal.

api/main.py builds the JSON app; web/routes.py holds the server-rendered
pages. Neither imports the other, so they are joined here.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app
from web.routes import router as web_router

app.include_router(web_router, tags=["Web UI"])
