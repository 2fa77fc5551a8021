"""
asgi.py -- ASGI entry point for the user administration extension.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
