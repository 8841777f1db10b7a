# src/bosschat/context/__init__.py
"""
System prompt assembly for outbound chat requests.
"""

from .fusion import (PLAIN_FORMAT_DIRECTIVE, build_system_prompt,
                     load_prior_context)

__all__ = [
    "PLAIN_FORMAT_DIRECTIVE",
    "build_system_prompt",
    "load_prior_context",
]
