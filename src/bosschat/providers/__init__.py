# src/bosschat/providers/__init__.py
"""
Upstream completion providers.
"""

from .base import BaseProvider
from .anthropic_provider import AnthropicProvider

__all__ = [
    "BaseProvider",
    "AnthropicProvider",
]
