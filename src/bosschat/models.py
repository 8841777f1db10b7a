# src/bosschat/models.py
"""
Core data models for bosschat.

Pydantic models for the values that cross module boundaries (turns, personas,
persisted conversation records) and a dataclass for the mutable in-memory
session owned by the session store.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Roles a turn can carry. System text never travels as a turn."""
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def _missing_(cls, value: object):  # type: ignore[misc]
        if isinstance(value, str):
            lower_value = value.lower()
            for member in cls:
                if member.value == lower_value:
                    return member
        return None


class FormatMode(str, Enum):
    """How the assistant should lay out its reply."""
    STRUCTURED = "structured"
    PLAIN = "plain"


class Turn(BaseModel):
    """One role-tagged message in a session or conversation."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    role: Role
    content: str

    def to_api(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


class Persona(BaseModel):
    """
    A named assistant character: display metadata plus its system prompt.

    Personas are built once at import time and never mutated.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Short key used in URLs and requests")
    name: str
    role: str = Field(description="Role label shown under the name")
    icon: str
    description: str
    color: str = Field(description="Accent color as a CSS hex string")
    greeting: str
    system_prompt: str

    def public_view(self) -> Dict[str, str]:
        """Fields the browser may see; the system prompt stays server-side."""
        return self.model_dump(exclude={"system_prompt"})


@dataclass
class Session:
    """
    Ephemeral per-tab conversation state.

    Attributes:
        session_id: Client-generated opaque token.
        turns: Append-only turn history for the lifetime of the session.
        last_active: Clock reading (store clock) of the last touch.
    """

    session_id: str
    turns: List[Turn] = field(default_factory=list)
    last_active: float = field(default_factory=time.monotonic)

    def recent(self, window: int) -> List[Turn]:
        """The last `window` turns, oldest first."""
        return self.turns[-window:] if window > 0 else []

    @property
    def last_turn(self) -> Optional[Turn]:
        return self.turns[-1] if self.turns else None


class ConversationRecord(BaseModel):
    """A persisted conversation row as seen by the pipeline."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    persona_id: str
    title: str
    summary: Optional[str] = None
    summary_turn_count: Optional[int] = None
    turn_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageRecord(BaseModel):
    """A persisted message row."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: str
    role: str
    content: str
    model_used: Optional[str] = None
    created_at: Optional[datetime] = None


class PriorContext(BaseModel):
    """
    Summaries of earlier conversations used to prime a new request.

    `persona_summary` comes from the same persona, `cross_persona_summary`
    from the most recent conversation with any other persona.
    """
    persona_summary: Optional[str] = None
    cross_persona_summary: Optional[str] = None
    cross_persona_name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.persona_summary or self.cross_persona_summary)
