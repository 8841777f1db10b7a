# src/bosschat/api_server/routes/conversations.py
"""
Conversation and message routes. All require an authenticated caller and
only ever expose the caller's own conversations.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...exceptions import ConversationNotFoundError, StorageError
from ...models import ConversationRecord
from ...storage.gateway import ConversationGateway
from ..auth import AuthenticatedUser, get_current_user
from ..deps import get_gateway
from ..models import (AppendMessageRequest, ConversationListItem,
                      CreateConversationRequest, CreatedResponse, MessageItem)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _owned_conversation(
    conversation_id: str,
    user: AuthenticatedUser,
    gateway: ConversationGateway,
) -> ConversationRecord:
    conversation = await gateway.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    if conversation.user_id != user.id:
        logger.warning(f"User {user.id} denied access to conversation {conversation_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to this conversation is denied")
    return conversation


@router.get("/conversations", response_model=List[ConversationListItem])
async def list_conversations(
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: ConversationGateway = Depends(get_gateway),
) -> List[ConversationListItem]:
    """The caller's 20 most recently updated conversations."""
    conversations = await gateway.list_conversations(user.id)
    return [
        ConversationListItem(id=c.id, title=c.title, persona_id=c.persona_id, updated_at=c.updated_at)
        for c in conversations
    ]


@router.post("/conversations", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    body: CreateConversationRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: ConversationGateway = Depends(get_gateway),
) -> CreatedResponse:
    try:
        conversation = await gateway.create_conversation(user.id, body.persona_id, body.title)
    except StorageError as e:
        logger.error(f"Conversation creation failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not create conversation")
    return CreatedResponse(id=conversation.id)


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageItem])
async def list_messages(
    conversation_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: ConversationGateway = Depends(get_gateway),
) -> List[MessageItem]:
    await _owned_conversation(conversation_id, user, gateway)
    messages = await gateway.list_messages(conversation_id)
    return [MessageItem(**m.model_dump(exclude={"conversation_id"})) for m in messages]


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def append_message(
    conversation_id: str,
    body: AppendMessageRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: ConversationGateway = Depends(get_gateway),
) -> CreatedResponse:
    await _owned_conversation(conversation_id, user, gateway)
    try:
        message = await gateway.add_message(conversation_id, body.role, body.content, body.model_used)
    except ConversationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return CreatedResponse(id=message.id)
