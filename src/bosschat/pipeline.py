# src/bosschat/pipeline.py
"""
The chat pipeline behind POST /api/chat.

Loads the session, fuses the system prompt, and hands back the relay's frame
stream. When the reply completes, the assistant turn is appended to the
session and, for persisted conversations, the turn pair is stored and the
summarizer consulted in a detached task so the response never waits on the
store.
"""

import logging
from typing import AsyncIterator, List, Optional, Union

from .context import build_system_prompt, load_prior_context
from .models import FormatMode, Persona, Role, Turn
from .providers.base import BaseProvider
from .relay import CompletionRelay, DisconnectProbe
from .sessions import SessionStore
from .storage.gateway import ConversationGateway
from .summarization import Summarizer
from .tasks import BackgroundTasks

logger = logging.getLogger(__name__)


class ChatPipeline:
    """Wires session state, context fusion, the relay and persistence together."""

    def __init__(
        self,
        provider: BaseProvider,
        sessions: SessionStore,
        tasks: BackgroundTasks,
        summarizer: Optional[Summarizer] = None,
        gateway: Optional[ConversationGateway] = None,
        chat_model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ):
        self.provider = provider
        self.sessions = sessions
        self.tasks = tasks
        self.summarizer = summarizer
        self.gateway = gateway
        self.chat_model = chat_model
        self.max_tokens = max_tokens

    async def open_stream(
        self,
        persona: Persona,
        session_id: str,
        user_text: str,
        format_mode: Union[FormatMode, str, None] = None,
        user_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        is_disconnected: Optional[DisconnectProbe] = None,
    ) -> AsyncIterator[str]:
        """
        Prepare one chat exchange and return its SSE frame stream.

        Args:
            persona: Persona answering the message.
            session_id: Client-generated session token.
            user_text: The new user message.
            format_mode: "plain" or "structured".
            user_id: Authenticated user, enables prior-context fusion.
            conversation_id: Persisted conversation (already ownership-checked) to record into.
            is_disconnected: Probe polled by the relay to detect a closed client.
        """
        session = self.sessions.get_or_create(session_id)
        self.sessions.append(session, Turn(role=Role.USER, content=user_text))

        prior_context = await load_prior_context(self.gateway, user_id, persona.id)
        system_prompt = build_system_prompt(persona, format_mode, prior_context)
        logger.info(
            f"Chat request: persona={persona.id} session={session_id} turns={len(session.turns)} "
            f"format={format_mode or 'structured'} prior_context={prior_context is not None} "
            f"conversation={conversation_id or '-'}"
        )

        relay = CompletionRelay(
            self.provider,
            model=self.chat_model,
            max_tokens=self.max_tokens,
            history_window=self.sessions.history_window,
        )

        def on_done(reply: str) -> None:
            self.sessions.append(session, Turn(role=Role.ASSISTANT, content=reply))
            if conversation_id and self.gateway is not None:
                self.tasks.spawn(
                    self._persist_turn(conversation_id, user_text, reply, list(session.turns)),
                    name=f"persist-{conversation_id}",
                )

        return relay.stream_chat(
            system_prompt,
            self.sessions.window(session),
            on_done=on_done,
            is_disconnected=is_disconnected,
        )

    async def _persist_turn(self, conversation_id: str, user_text: str, reply: str, turns: List[Turn]) -> None:
        try:
            new_count = await self.gateway.record_turn_pair(conversation_id, user_text, reply, model_used=self.chat_model)
        except Exception as e:
            logger.error(f"Failed to persist turn for conversation {conversation_id}: {e}", exc_info=True)
            return
        if self.summarizer is not None:
            await self.summarizer.maybe_summarize(conversation_id, turns, new_count)
