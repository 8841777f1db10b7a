# src/bosschat/providers/base.py
"""
Abstract base class for upstream completion providers.

A provider turns a system prompt plus a list of turns into either a stream of
text deltas (the chat reply) or a single completed string (summaries).
Failures of either call are raised as `ProviderError` with the upstream HTTP
status attached when there was one.
"""

import abc
from typing import AsyncIterator, List, Optional

from ..models import Turn


class BaseProvider(abc.ABC):
    """Interface the relay and the summarizer depend on."""

    @abc.abstractmethod
    def get_name(self) -> str:
        """Return the provider's identifier, e.g. "anthropic"."""

    @abc.abstractmethod
    def stream_text(
        self,
        system_prompt: str,
        turns: List[Turn],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[str]:
        """
        Stream the user-facing text of a completion, chunk by chunk.

        Implementations are async generators. Reasoning/thinking output must
        never be yielded. Closing the generator early must release the
        upstream connection.

        Raises:
            ProviderError: On a non-2xx upstream status or a transport failure,
                either when the stream opens or mid-stream.
        """

    @abc.abstractmethod
    async def complete(
        self,
        system_prompt: str,
        turns: List[Turn],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Run a non-streaming completion and return its text.

        Raises:
            ProviderError: On any upstream failure.
        """

    async def close(self) -> None:
        """Release network resources. Providers without any can rely on this no-op."""
        pass
