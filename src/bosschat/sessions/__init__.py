# src/bosschat/sessions/__init__.py
"""
In-memory session state for bosschat.

Components:
    - SessionStore: TTL-swept, optionally LRU-capped map of session id to turns
"""

from .store import SessionStore

__all__ = [
    "SessionStore",
]
