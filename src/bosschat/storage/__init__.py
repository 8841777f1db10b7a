# src/bosschat/storage/__init__.py
"""
Persistence gateway for conversations and messages.
"""

from .db import create_db_engine, create_session_factory
from .gateway import ConversationGateway
from .tables import conversations_table, messages_table, metadata

__all__ = [
    "ConversationGateway",
    "create_db_engine",
    "create_session_factory",
    "conversations_table",
    "messages_table",
    "metadata",
]
