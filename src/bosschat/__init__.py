# src/bosschat/__init__.py
"""
bosschat - persona-driven business advice chat.

A small-business owner picks one of several adviser personas and chats with
it in the browser. Replies are streamed from the upstream completion API over
Server-Sent Events; signed-in users get their conversations persisted and
summarized so later conversations, with any persona, start from what was
discussed before.
"""

from importlib.metadata import PackageNotFoundError, version

from .config import Settings, get_settings
from .exceptions import (AuthError, BossChatError, ConfigError,
                         ConversationNotFoundError, ProviderError,
                         RelayStateError, StorageError)
from .models import FormatMode, Persona, Role, Session, Turn
from .personas import PERSONAS, get_all_personas, get_persona

try:
    __version__ = version("bosschat")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Models
    "FormatMode",
    "Persona",
    "Role",
    "Session",
    "Turn",
    # Personas
    "PERSONAS",
    "get_all_personas",
    "get_persona",
    # Exceptions
    "AuthError",
    "BossChatError",
    "ConfigError",
    "ConversationNotFoundError",
    "ProviderError",
    "RelayStateError",
    "StorageError",
    "__version__",
]
