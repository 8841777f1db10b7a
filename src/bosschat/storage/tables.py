# src/bosschat/storage/tables.py
"""
Relational schema read and written by the chat pipeline.
"""

from sqlalchemy import (Column, DateTime, ForeignKey, Index, Integer, MetaData,
                        String, Table, Text)

metadata = MetaData()

conversations_table = Table(
    "conversations",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("persona_id", String(32), nullable=False),
    Column("title", String(200), nullable=False),
    Column("summary", Text, nullable=True),
    # turn count the stored summary reflects
    Column("summary_turn_count", Integer, nullable=True),
    Column("turn_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("ix_conversations_user_updated", "user_id", "updated_at"),
)

messages_table = Table(
    "messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("conversation_id", String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
    Column("role", String(16), nullable=False),
    Column("content", Text, nullable=False),
    Column("model_used", String(100), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_messages_conversation_created", "conversation_id", "created_at"),
)
