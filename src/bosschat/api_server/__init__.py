# src/bosschat/api_server/__init__.py
"""
HTTP surface of bosschat: the FastAPI application factory, its routes,
authentication dependencies and request middleware.
"""

from .main import create_app

__all__ = ["create_app"]
