# src/bosschat/summarization.py
"""
Rolling conversation summaries.

Every `every` completed turn pairs the last few turns are condensed into a
short note by a fast model and stored on the conversation. The note feeds
the prior-context block of later requests. Summaries are best-effort: any
failure is logged and the conversation keeps its previous summary. The turn
counter itself is advanced by the gateway when the pair is recorded, so it
moves whether or not a summary is produced.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from .exceptions import ProviderError
from .models import Role, Turn
from .providers.base import BaseProvider

if TYPE_CHECKING:
    from .storage.gateway import ConversationGateway

logger = logging.getLogger(__name__)

SUMMARY_EVERY = 5
SUMMARY_SOURCE_TURNS = 10
SUMMARY_MAX_LINES = 3

SUMMARY_SYSTEM_PROMPT = (
    "You write short private notes about a conversation between a small-business owner "
    "and an adviser. Write at most 3 lines, plain text, no markdown: "
    "1) the owner's business and domain, 2) the core problem they raised, "
    "3) the solutions or next steps that were discussed."
)

_LABELS = {Role.USER.value: "Owner", Role.ASSISTANT.value: "Adviser"}


def format_dialogue(turns: List[Turn]) -> str:
    """Render turns as a labeled transcript, one speaker block per turn."""
    return "\n\n".join(f"{_LABELS.get(Role(t.role).value, 'Unknown')}: {t.content.strip()}" for t in turns)


def clamp_lines(text: str, max_lines: int = SUMMARY_MAX_LINES) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return "\n".join(lines[:max_lines])


class Summarizer:
    """Generates and stores rolling summaries for persisted conversations."""

    def __init__(
        self,
        provider: BaseProvider,
        gateway: Optional["ConversationGateway"],
        model: Optional[str] = None,
        max_tokens: int = 300,
        every: int = SUMMARY_EVERY,
        source_turns: int = SUMMARY_SOURCE_TURNS,
    ):
        self.provider = provider
        self.gateway = gateway
        self.model = model
        self.max_tokens = max_tokens
        self.every = every
        self.source_turns = source_turns

    def is_due(self, turn_count: int) -> bool:
        return turn_count > 0 and turn_count % self.every == 0

    async def maybe_summarize(self, conversation_id: str, turns: List[Turn], new_turn_count: int) -> Optional[str]:
        """
        Summarize the conversation if `new_turn_count` is a multiple of `every`.

        Args:
            conversation_id: Persisted conversation to update.
            turns: The session's turns, oldest first; only the tail is used.
            new_turn_count: The conversation's turn counter after the latest pair.

        Returns:
            The stored summary, or None when not due or when anything failed.
        """
        if not self.is_due(new_turn_count):
            return None
        if self.gateway is None:
            logger.debug("No conversation store configured; skipping summary")
            return None

        recent = turns[-self.source_turns:]
        if not recent:
            return None

        prompt = (
            "Summarize this conversation in at most 3 lines.\n\n"
            f"{format_dialogue(recent)}"
        )
        try:
            raw = await self.provider.complete(
                SUMMARY_SYSTEM_PROMPT,
                [Turn(role=Role.USER, content=prompt)],
                model=self.model,
                max_tokens=self.max_tokens,
            )
        except ProviderError as e:
            logger.warning(f"Summary generation failed for conversation {conversation_id}: {e}")
            return None

        summary = clamp_lines(raw)
        if not summary:
            logger.warning(f"Empty summary returned for conversation {conversation_id}")
            return None

        try:
            await self.gateway.save_summary(conversation_id, summary, new_turn_count)
        except Exception as e:
            logger.error(f"Failed to store summary for conversation {conversation_id}: {e}", exc_info=True)
            return None
        return summary
