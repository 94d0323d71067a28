"""
asgi.py -- ASGI entry point for Curio.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
