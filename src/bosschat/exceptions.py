# src/bosschat/exceptions.py
"""
Custom exceptions for the bosschat service.

This module defines the exception hierarchy used across the chat pipeline so
that route handlers and background tasks can react to specific failures
(upstream provider errors, storage errors, authentication failures) without
inspecting messages.
"""

from typing import Optional


class BossChatError(Exception):
    """Base class for all bosschat specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in bosschat."):
        super().__init__(message)

class ConfigError(BossChatError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class ProviderError(BossChatError):
    """
    Raised for errors originating from the upstream completion provider.

    `status_code` carries the upstream HTTP status when one was received;
    it is None for transport failures (connection reset, timeout).
    """
    def __init__(self, provider_name: str = "Unknown", message: str = "Provider error.",
                 status_code: Optional[int] = None):
        self.provider_name = provider_name
        self.status_code = status_code
        super().__init__(f"Error with provider '{provider_name}': {message}")

class StorageError(BossChatError):
    """Raised for errors related to the persistence gateway."""
    def __init__(self, message: str = "Storage error."):
        super().__init__(message)

class ConversationNotFoundError(StorageError):
    """Raised when a conversation id does not exist in the store."""
    def __init__(self, conversation_id: str, message: str = "Conversation not found."):
        self.conversation_id = conversation_id
        super().__init__(f"{message} Conversation ID: '{conversation_id}'")

class AuthError(BossChatError):
    """Raised when a bearer token cannot be verified with the identity provider."""
    def __init__(self, message: str = "Authentication failed."):
        super().__init__(message)

class RelayStateError(BossChatError):
    """Raised when a completion relay is driven through an invalid state transition."""
    def __init__(self, message: str = "Invalid relay state transition."):
        super().__init__(message)
