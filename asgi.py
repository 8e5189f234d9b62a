"""
asgi.py -- ASGI entry point for the agenda service.

api/main.py builds the FastAPI app; this module only exposes it under the
conventional name servers look for, so deployment config never has to know
the package layout.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import app

__all__ = ["app"]
