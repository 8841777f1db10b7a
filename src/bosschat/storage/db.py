# src/bosschat/storage/db.py
"""
Database engine and session factory setup.

The managed store is PostgreSQL reached through asyncpg
(``postgresql+asyncpg://...``). Any SQLAlchemy async URL works, which is how
the test suite runs against ``sqlite+aiosqlite``.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str) -> str:
    """Map plain ``postgres://`` URLs (as hosting dashboards print them) to the asyncpg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if database_url.startswith(prefix):
            return "postgresql+asyncpg://" + database_url[len(prefix):]
    return database_url


def create_db_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for the conversation store.

    Args:
        database_url: SQLAlchemy async connection URL.
        echo: Log every SQL statement (debugging only).
    """
    url = normalize_database_url(database_url)
    engine = create_async_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo,
    )
    logger.info(f"Database engine created for dialect '{engine.dialect.name}'")
    return engine


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
