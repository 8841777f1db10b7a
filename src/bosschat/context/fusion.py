# src/bosschat/context/fusion.py
"""
Context fusion: persona prompt + format directive + prior-conversation summaries.

The fused block orders the same-persona summary before the cross-persona one
and leaves out any source that is missing, with no placeholder text.
"""

import logging
from typing import TYPE_CHECKING, List, Optional, Union

from ..models import FormatMode, Persona, PriorContext
from ..personas import get_persona

if TYPE_CHECKING:
    from ..storage.gateway import ConversationGateway

logger = logging.getLogger(__name__)

PLAIN_FORMAT_DIRECTIVE = (
    "[Output format]\n"
    "Answer in plain conversational prose only. Do not use markdown of any kind: "
    "no headers, no bullet or numbered lists, no tables, no bold or italic emphasis, "
    "no code blocks and no emoji. Separate ideas with ordinary sentences and paragraphs."
)

PRIOR_CONTEXT_HEADER = (
    "[Earlier conversations with this user]\n"
    "The notes below summarize previous conversations. Use them silently to tailor your "
    "answers. Do not mention that you have notes or summaries, and do not quote them."
)


def build_system_prompt(
    persona: Persona,
    format_mode: Union[FormatMode, str, None] = None,
    prior_context: Optional[PriorContext] = None,
) -> str:
    """
    Assemble the system prompt for one chat request.

    Args:
        persona: The persona answering the request.
        format_mode: "plain" appends the prose-only directive; "structured" or None adds nothing.
        prior_context: Summaries of the user's earlier conversations, if any.

    Returns:
        The system prompt text.
    """
    sections: List[str] = [persona.system_prompt]

    if _is_plain(format_mode):
        sections.append(PLAIN_FORMAT_DIRECTIVE)

    if prior_context is not None and not prior_context.is_empty:
        sections.append(_prior_context_block(prior_context))

    return "\n\n".join(sections)


def _is_plain(format_mode: Union[FormatMode, str, None]) -> bool:
    if format_mode is None:
        return False
    value = format_mode.value if isinstance(format_mode, FormatMode) else str(format_mode)
    return value.lower() == FormatMode.PLAIN.value


def _prior_context_block(prior_context: PriorContext) -> str:
    lines = [PRIOR_CONTEXT_HEADER]
    if prior_context.persona_summary:
        lines.append(f"- Previously with you: {prior_context.persona_summary.strip()}")
    if prior_context.cross_persona_summary:
        source = prior_context.cross_persona_name or "another adviser"
        lines.append(f"- Recently with {source}: {prior_context.cross_persona_summary.strip()}")
    return "\n".join(lines)


async def load_prior_context(
    gateway: Optional["ConversationGateway"],
    user_id: Optional[str],
    persona_id: str,
) -> Optional[PriorContext]:
    """
    Fetch the summaries used to prime a request for an authenticated user.

    Gateway failures are logged and treated as "no prior context" so the chat
    request itself is never blocked by the store.

    Returns:
        A PriorContext, or None when there is no user, no gateway or nothing stored.
    """
    if gateway is None or not user_id:
        return None

    try:
        own = await gateway.latest_summary(user_id, persona_id)
        other = await gateway.latest_cross_persona_summary(user_id, persona_id)
    except Exception as e:
        logger.warning(f"Could not load prior context for user {user_id}: {e}")
        return None

    cross_name = None
    if other is not None:
        other_persona = get_persona(other.persona_id)
        cross_name = other_persona.name if other_persona else None

    context = PriorContext(
        persona_summary=own.summary if own else None,
        cross_persona_summary=other.summary if other else None,
        cross_persona_name=cross_name,
    )
    return None if context.is_empty else context
