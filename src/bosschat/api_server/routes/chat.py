# src/bosschat/api_server/routes/chat.py
"""
The streaming chat endpoint.

Everything that can be rejected (rate limit, validation, authentication,
conversation ownership) is rejected with an HTTP status before the stream
opens. Once headers are sent, upstream failures surface only as `error`
frames inside the stream.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from ... import sse
from ...config import Settings
from ...personas import get_persona
from ...pipeline import ChatPipeline
from ...storage.gateway import ConversationGateway
from ..auth import AuthenticatedUser, get_optional_user
from ..deps import (enforce_rate_limit, get_optional_gateway, get_pipeline,
                    get_settings_from_app)
from ..models import ChatRequest

logger = logging.getLogger(__name__)

router = APIRouter()


async def _check_conversation_access(
    conversation_id: str,
    persona_id: str,
    user: Optional[AuthenticatedUser],
    gateway: Optional[ConversationGateway],
) -> None:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required to save a conversation")
    if gateway is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Conversation storage is not configured")

    conversation = await gateway.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    if conversation.user_id != user.id:
        logger.warning(f"User {user.id} tried to write to conversation {conversation_id} owned by another user")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to this conversation is denied")
    if conversation.persona_id != persona_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Conversation belongs to a different persona")


@router.post("/chat", dependencies=[Depends(enforce_rate_limit)])
async def handle_chat(
    request: Request,
    chat_request: ChatRequest,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    pipeline: ChatPipeline = Depends(get_pipeline),
    gateway: Optional[ConversationGateway] = Depends(get_optional_gateway),
    settings: Settings = Depends(get_settings_from_app),
) -> StreamingResponse:
    """
    Relay one user message to the persona and stream the reply as SSE.

    Frames: `start`, then `delta` per text chunk, then `done`; or `error`.
    """
    if settings.require_auth and user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    persona = get_persona(chat_request.persona)
    if persona is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid persona")

    if chat_request.conversation_id:
        await _check_conversation_access(chat_request.conversation_id, persona.id, user, gateway)

    frames = await pipeline.open_stream(
        persona=persona,
        session_id=chat_request.session_id,
        user_text=chat_request.user_text,
        format_mode=chat_request.format_mode,
        user_id=user.id if user else None,
        conversation_id=chat_request.conversation_id,
        is_disconnected=request.is_disconnected,
    )
    return StreamingResponse(frames, media_type="text/event-stream", headers=sse.SSE_HEADERS)
