# src/bosschat/api_server/routes/__init__.py
"""
API routes package initialization.

This module exports all the API routers for registration with the main
FastAPI application.
"""

from .chat import router as chat_router
from .conversations import router as conversations_router
from .core import router as core_router
from .pages import router as pages_router

__all__ = [
    "chat_router",
    "conversations_router",
    "core_router",
    "pages_router",
]
