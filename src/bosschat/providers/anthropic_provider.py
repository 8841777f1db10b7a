# src/bosschat/providers/anthropic_provider.py
"""
Anthropic API provider for bosschat.

Uses the official `anthropic` SDK's async client. Chat replies are streamed
with the Messages streaming helper and only text deltas are relayed; extended
thinking is explicitly disabled on every request.
"""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic

from ..exceptions import ConfigError, ProviderError
from ..models import Role, Turn
from .base import BaseProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5"
DEFAULT_MAX_TOKENS = 4096
THINKING_DISABLED: Dict[str, str] = {"type": "disabled"}


class AnthropicProvider(BaseProvider):
    """
    Provider for the Anthropic Messages API (Claude models).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        default_model: str = DEFAULT_MODEL,
        default_max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = 120.0,
        client: Optional[AsyncAnthropic] = None,
    ):
        """
        Initializes the AnthropicProvider.

        Args:
            api_key: Anthropic API key. The SDK falls back to ANTHROPIC_API_KEY when None.
            base_url: Custom API endpoint URL.
            default_model: Model used when a call does not name one.
            default_max_tokens: Response length limit when a call does not give one.
            timeout: Request timeout in seconds.
            client: Pre-built async client (tests inject a stub here).
        """
        self.default_model = default_model
        self.default_max_tokens = default_max_tokens
        self.timeout = timeout

        if client is not None:
            self._client = client
            return

        if not api_key:
            logger.warning("Anthropic API key not configured; relying on ANTHROPIC_API_KEY in the environment.")
        try:
            self._client = AsyncAnthropic(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        except Exception as e:
            logger.error(f"Failed to initialize Anthropic client: {e}", exc_info=True)
            raise ConfigError(f"Anthropic client initialization failed: {e}")
        logger.debug(f"AsyncAnthropic client initialized (default model {default_model}).")

    def get_name(self) -> str:
        return "anthropic"

    def _convert_turns(self, turns: List[Turn]) -> List[Dict[str, Any]]:
        """
        Convert turns to Messages API params.

        The API wants the list to open with a user message and alternate roles,
        so leading assistant turns (a cut-off history window) are dropped and
        consecutive same-role turns are merged.
        """
        messages: List[Dict[str, Any]] = []
        for turn in turns:
            role = Role(turn.role).value
            if not messages and role != Role.USER.value:
                continue
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"] += f"\n\n{turn.content}"
                continue
            messages.append({"role": role, "content": turn.content})
        return messages

    def _request_kwargs(
        self,
        system_prompt: str,
        turns: List[Turn],
        model: Optional[str],
        max_tokens: Optional[int],
    ) -> Dict[str, Any]:
        messages = self._convert_turns(turns)
        if not messages:
            raise ProviderError(self.get_name(), "No user message to send after history conversion.")
        return {
            "model": model or self.default_model,
            "max_tokens": max_tokens or self.default_max_tokens,
            "system": system_prompt,
            "messages": messages,
            "thinking": THINKING_DISABLED,
        }

    async def stream_text(
        self,
        system_prompt: str,
        turns: List[Turn],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[str]:
        kwargs = self._request_kwargs(system_prompt, turns, model, max_tokens)
        logger.debug(f"Opening Anthropic stream: model='{kwargs['model']}', num_messages={len(kwargs['messages'])}")
        try:
            async with self._client.messages.stream(**kwargs) as stream:
                # text_stream yields text deltas only; thinking deltas never appear here
                async for text in stream.text_stream:
                    if text:
                        yield text
        except anthropic.APIStatusError as e:
            logger.error(f"Anthropic API status error during stream: {e.status_code} - {e.message}")
            raise ProviderError(self.get_name(), f"API Error (Status: {e.status_code}): {e.message}", status_code=e.status_code)
        except anthropic.APIConnectionError as e:
            logger.error(f"Anthropic API connection error during stream: {e}")
            raise ProviderError(self.get_name(), f"Connection error: {e}")
        except anthropic.AnthropicError as e:
            logger.error(f"Unexpected Anthropic error during stream: {e}", exc_info=True)
            raise ProviderError(self.get_name(), f"Unexpected stream error: {e}")

    async def complete(
        self,
        system_prompt: str,
        turns: List[Turn],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        kwargs = self._request_kwargs(system_prompt, turns, model, max_tokens)
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            logger.error(f"Anthropic API status error: {e.status_code} - {e.message}")
            raise ProviderError(self.get_name(), f"API Error (Status: {e.status_code}): {e.message}", status_code=e.status_code)
        except anthropic.AnthropicError as e:
            logger.error(f"Anthropic API error: {e}")
            raise ProviderError(self.get_name(), f"Request failed: {e}")

        return "".join(block.text for block in response.content if block.type == "text").strip()

    async def close(self) -> None:
        try:
            await self._client.close()
            logger.debug("AsyncAnthropic client closed.")
        except Exception as e:
            logger.error(f"Error closing AsyncAnthropic client: {e}", exc_info=True)
