# src/bosschat/storage/gateway.py
"""
Conversation gateway: the pipeline's read/write interface to the relational store.

Each public coroutine runs in its own session and transaction. Nothing spans
more than one call, so a failure in one write never rolls back another.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncEngine

from ..exceptions import ConversationNotFoundError, StorageError
from ..models import ConversationRecord, MessageRecord, Role
from .db import create_db_engine, create_session_factory
from .tables import conversations_table, messages_table, metadata

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New conversation"
MAX_TITLE_LENGTH = 100
CONVERSATION_LIST_LIMIT = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationGateway:
    """
    Async data access for conversations and their messages.

    Example:
        gateway = ConversationGateway.from_url("postgresql+asyncpg://...")
        await gateway.create_tables()
        conversation = await gateway.create_conversation(user_id, "jia", "VAT question")
        count = await gateway.record_turn_pair(conversation.id, "hi", "hello!")
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str) -> "ConversationGateway":
        return cls(create_db_engine(database_url))

    async def create_tables(self) -> None:
        """Create missing tables. Existing tables are left untouched."""
        async with self._engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Conversation tables verified")

    async def close(self) -> None:
        await self._engine.dispose()

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def create_conversation(self, user_id: str, persona_id: str, title: Optional[str]) -> ConversationRecord:
        now = _utcnow()
        title = (title or "").strip()[:MAX_TITLE_LENGTH] or DEFAULT_TITLE
        values = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "persona_id": persona_id,
            "title": title,
            "summary": None,
            "summary_turn_count": None,
            "turn_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(insert(conversations_table).values(**values))
        except Exception as e:
            logger.error(f"Failed to create conversation for user {user_id}: {e}", exc_info=True)
            raise StorageError(f"Could not create conversation: {e}")

        logger.debug(f"Created conversation {values['id']} (user={user_id}, persona={persona_id})")
        return ConversationRecord(**values)

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationRecord]:
        query = select(conversations_table).where(conversations_table.c.id == conversation_id)
        async with self._session_factory() as session:
            row = (await session.execute(query)).mappings().first()
        return ConversationRecord(**row) if row else None

    async def list_conversations(self, user_id: str, limit: int = CONVERSATION_LIST_LIMIT) -> List[ConversationRecord]:
        """The user's most recently updated conversations, newest first."""
        query = (
            select(conversations_table)
            .where(conversations_table.c.user_id == user_id)
            .order_by(conversations_table.c.updated_at.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(query)).mappings().all()
        return [ConversationRecord(**row) for row in rows]

    async def latest_summary(self, user_id: str, persona_id: str) -> Optional[ConversationRecord]:
        """Most recently updated summarized conversation with this persona."""
        query = (
            select(conversations_table)
            .where(
                conversations_table.c.user_id == user_id,
                conversations_table.c.persona_id == persona_id,
                conversations_table.c.summary.is_not(None),
            )
            .order_by(conversations_table.c.updated_at.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(query)).mappings().first()
        return ConversationRecord(**row) if row else None

    async def latest_cross_persona_summary(self, user_id: str, persona_id: str) -> Optional[ConversationRecord]:
        """Most recently updated summarized conversation with any other persona."""
        query = (
            select(conversations_table)
            .where(
                conversations_table.c.user_id == user_id,
                conversations_table.c.persona_id != persona_id,
                conversations_table.c.summary.is_not(None),
            )
            .order_by(conversations_table.c.updated_at.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(query)).mappings().first()
        return ConversationRecord(**row) if row else None

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def list_messages(self, conversation_id: str) -> List[MessageRecord]:
        query = (
            select(messages_table)
            .where(messages_table.c.conversation_id == conversation_id)
            .order_by(messages_table.c.id)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(query)).mappings().all()
        return [MessageRecord(**row) for row in rows]

    async def add_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        model_used: Optional[str] = None,
    ) -> MessageRecord:
        """
        Append one message and touch the conversation's `updated_at`.

        The turn counter is not changed here; it only moves with complete
        turn pairs (see `record_turn_pair`).
        """
        now = _utcnow()
        role = Role(role).value
        async with self._session_factory() as session:
            async with session.begin():
                touched = await session.execute(
                    update(conversations_table)
                    .where(conversations_table.c.id == conversation_id)
                    .values(updated_at=now)
                )
                if touched.rowcount == 0:
                    raise ConversationNotFoundError(conversation_id)
                result = await session.execute(
                    insert(messages_table)
                    .values(conversation_id=conversation_id, role=role, content=content,
                            model_used=model_used, created_at=now)
                    .returning(messages_table.c.id)
                )
                message_id = result.scalar_one()
        return MessageRecord(id=message_id, conversation_id=conversation_id, role=role,
                             content=content, model_used=model_used, created_at=now)

    async def record_turn_pair(
        self,
        conversation_id: str,
        user_text: str,
        assistant_text: str,
        model_used: Optional[str] = None,
    ) -> int:
        """
        Store a completed user/assistant exchange and advance the turn counter by one.

        The two inserts and the counter increment share one transaction, and
        the increment is done in SQL so concurrent pairs cannot lose a count.

        Returns:
            The conversation's turn counter after the increment.

        Raises:
            ConversationNotFoundError: If the conversation does not exist.
        """
        now = _utcnow()
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(conversations_table)
                    .where(conversations_table.c.id == conversation_id)
                    .values(turn_count=conversations_table.c.turn_count + 1, updated_at=now)
                    .returning(conversations_table.c.turn_count)
                )
                new_count = result.scalar_one_or_none()
                if new_count is None:
                    raise ConversationNotFoundError(conversation_id)
                await session.execute(
                    insert(messages_table),
                    [
                        {"conversation_id": conversation_id, "role": Role.USER.value,
                         "content": user_text, "model_used": None, "created_at": now},
                        {"conversation_id": conversation_id, "role": Role.ASSISTANT.value,
                         "content": assistant_text, "model_used": model_used, "created_at": now},
                    ],
                )
        logger.debug(f"Recorded turn pair #{new_count} for conversation {conversation_id}")
        return new_count

    async def save_summary(self, conversation_id: str, summary: str, turn_count: int) -> None:
        """Persist a rolling summary together with the turn count it reflects."""
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(conversations_table)
                    .where(conversations_table.c.id == conversation_id)
                    .values(summary=summary, summary_turn_count=turn_count, updated_at=_utcnow())
                )
                if result.rowcount == 0:
                    raise ConversationNotFoundError(conversation_id)
        logger.info(f"Saved summary for conversation {conversation_id} at turn {turn_count}")
