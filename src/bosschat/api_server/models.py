# src/bosschat/api_server/models.py
"""
Pydantic models for the bosschat API server.

Request models use camelCase aliases to match the browser client's JSON and
accept snake_case names too.
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models import FormatMode, Role
from ..personas import PERSONAS

MAX_MESSAGES = 50
MAX_CONTENT_LENGTH = 10000


class ChatMessage(BaseModel):
    """One message of the chat request body."""
    role: Role = Field(description="'user' or 'assistant'")
    content: str = Field(min_length=1, max_length=MAX_CONTENT_LENGTH)


class ChatRequest(BaseModel):
    """
    Request model for POST /api/chat.

    Only the last message is taken as the new user turn; earlier history lives
    in the server-side session.
    """
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    persona: str = Field(description="Persona key")
    session_id: str = Field(alias="sessionId", min_length=1, max_length=128)
    messages: List[ChatMessage] = Field(min_length=1, max_length=MAX_MESSAGES)
    format_mode: Optional[FormatMode] = Field(default=None, alias="formatMode")
    conversation_id: Optional[str] = Field(default=None, alias="conversationId", max_length=64)

    @field_validator("persona")
    @classmethod
    def _known_persona(cls, value: str) -> str:
        if value not in PERSONAS:
            raise ValueError("Invalid persona")
        return value

    @model_validator(mode="after")
    def _ends_with_user_message(self) -> "ChatRequest":
        if self.messages[-1].role != Role.USER:
            raise ValueError("The last message must come from the user")
        return self

    @property
    def user_text(self) -> str:
        return self.messages[-1].content


class CreateConversationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    persona_id: str = Field(alias="personaId")
    title: Optional[str] = Field(default=None, description="Trimmed to 100 characters when stored")

    @field_validator("persona_id")
    @classmethod
    def _known_persona(cls, value: str) -> str:
        if value not in PERSONAS:
            raise ValueError("Invalid persona")
        return value


class AppendMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    role: Role
    content: str = Field(min_length=1, max_length=MAX_CONTENT_LENGTH)
    model_used: Optional[str] = Field(default=None, alias="modelUsed", max_length=100)


class ConversationListItem(BaseModel):
    id: str
    title: str
    persona_id: str
    updated_at: Optional[datetime] = None


class MessageItem(BaseModel):
    id: int
    role: str
    content: str
    model_used: Optional[str] = None
    created_at: Optional[datetime] = None


class CreatedResponse(BaseModel):
    id: Union[str, int]


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """
    error: str = Field(description="Error message describing what went wrong")
    field: Optional[str] = Field(default=None, description="Request field the error refers to")
