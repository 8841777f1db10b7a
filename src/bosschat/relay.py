# src/bosschat/relay.py
"""
Completion relay: upstream token stream -> SSE frames.

A relay is one-shot. Its lifecycle is

    idle -> started -> streaming (-> streaming)* -> done | errored

`started` emits the `start` frame before any delta. Every run ends with
exactly one `done` or `error` frame unless the client went away, in which
case the upstream stream is released and nothing more is written.
"""

import inspect
import logging
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Union

from . import sse
from .exceptions import ProviderError, RelayStateError
from .models import Turn
from .providers.base import BaseProvider

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "The AI service is receiving too many requests right now. Please wait a moment and try again."
AUTH_FAILED_MESSAGE = "The AI service rejected the server's credentials. Please let the site administrator know."
SERVER_ERROR_MESSAGE = "The AI service is temporarily unavailable. Please try again shortly."
GENERIC_ERROR_MESSAGE = "Could not connect to the AI service. Please try again."

DoneHook = Callable[[str], Union[Awaitable[Any], Any]]
ErrorHook = Callable[[BaseException], Union[Awaitable[Any], Any]]
DisconnectProbe = Callable[[], Awaitable[bool]]


class RelayState(str, Enum):
    IDLE = "idle"
    STARTED = "started"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"


_ALLOWED = {
    RelayState.IDLE: {RelayState.STARTED},
    RelayState.STARTED: {RelayState.STREAMING, RelayState.DONE, RelayState.ERRORED},
    RelayState.STREAMING: {RelayState.STREAMING, RelayState.DONE, RelayState.ERRORED},
    RelayState.DONE: set(),
    RelayState.ERRORED: set(),
}


def error_message_for(exc: BaseException) -> str:
    """Pick the user-facing message for an upstream failure by HTTP status."""
    status_code = getattr(exc, "status_code", None) if isinstance(exc, ProviderError) else None
    if status_code == 429:
        return RATE_LIMITED_MESSAGE
    if status_code == 401:
        return AUTH_FAILED_MESSAGE
    if status_code is not None and status_code >= 500:
        return SERVER_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE


async def _run_hook(hook: Optional[Callable[..., Any]], *args: Any) -> None:
    if hook is None:
        return
    result = hook(*args)
    if inspect.isawaitable(result):
        await result


class CompletionRelay:
    """
    Streams one completion from `provider` to the client as SSE frames.

    Example:
        relay = CompletionRelay(provider, model="claude-sonnet-4-5")
        return StreamingResponse(
            relay.stream_chat(system_prompt, history, on_done=save_reply),
            media_type="text/event-stream",
        )
    """

    def __init__(
        self,
        provider: BaseProvider,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        history_window: int = 40,
    ):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self.history_window = history_window
        self.state = RelayState.IDLE
        self._parts: List[str] = []

    @property
    def text(self) -> str:
        """Everything relayed so far, concatenated in arrival order."""
        return "".join(self._parts)

    def _transition(self, new_state: RelayState) -> None:
        if new_state not in _ALLOWED[self.state]:
            raise RelayStateError(f"Cannot move relay from '{self.state.value}' to '{new_state.value}'.")
        self.state = new_state

    async def stream_chat(
        self,
        system_prompt: str,
        history: List[Turn],
        on_done: Optional[DoneHook] = None,
        on_error: Optional[ErrorHook] = None,
        is_disconnected: Optional[DisconnectProbe] = None,
    ) -> AsyncIterator[str]:
        """
        Relay one completion.

        Args:
            system_prompt: Fused system prompt.
            history: Session turns; only the last `history_window` are sent.
            on_done: Called with the full reply text before the `done` frame.
            on_error: Called with the upstream exception before the `error` frame.
            is_disconnected: Polled before each delta; True aborts the upstream read.

        Yields:
            Encoded SSE frames.

        Raises:
            RelayStateError: If the relay has already been run.
        """
        self._transition(RelayState.STARTED)
        yield sse.start_frame()

        window = history[-self.history_window:] if self.history_window > 0 else []
        upstream = self.provider.stream_text(system_prompt, window, model=self.model, max_tokens=self.max_tokens)
        failure: Optional[BaseException] = None
        try:
            async for chunk in upstream:
                if is_disconnected is not None and await is_disconnected():
                    logger.info(f"Client disconnected after {len(self._parts)} chunk(s); aborting upstream stream")
                    self._transition(RelayState.ERRORED)
                    return
                self._transition(RelayState.STREAMING)
                self._parts.append(chunk)
                yield sse.delta_frame(chunk)
        except ProviderError as e:
            logger.warning(f"Upstream failure during relay: {e}")
            failure = e
        except Exception as e:
            logger.error(f"Unexpected error during relay: {e}", exc_info=True)
            failure = e
        finally:
            aclose = getattr(upstream, "aclose", None)
            if aclose is not None:
                await aclose()

        if failure is not None:
            self._transition(RelayState.ERRORED)
            try:
                await _run_hook(on_error, failure)
            except Exception as hook_error:
                logger.error(f"Relay error hook failed: {hook_error}", exc_info=True)
            yield sse.error_frame(error_message_for(failure))
            return

        self._transition(RelayState.DONE)
        try:
            await _run_hook(on_done, self.text)
        except Exception as hook_error:
            # the reply reached the client; bookkeeping failures stay server-side
            logger.error(f"Relay completion hook failed: {hook_error}", exc_info=True)
        yield sse.done_frame()
