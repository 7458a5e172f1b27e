"""
Database Session Management

This module builds the async SQLAlchemy engine and session factory used by
the SQL user state store.
"""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gamification_engine.common.config import DatabaseConfig, get_config
from gamification_engine.common.db.base import Base
from gamification_engine.common.logger import app_logger

# Set up logging
logger = app_logger.getChild("db.session")


def get_engine_kwargs(database_url: str, database_config: DatabaseConfig) -> Dict[str, Any]:
    """
    Get engine keyword arguments based on database type.
    Different databases support different connection options.
    """
    kwargs: Dict[str, Any] = {"echo": database_config.echo}

    if database_url.startswith("postgresql"):
        kwargs.update({
            "pool_size": database_config.pool_size,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })
    elif database_url.startswith("sqlite") and ":memory:" in database_url:
        # One shared connection, otherwise every session sees an empty database
        kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })

    return kwargs


def create_engine(database_config: Optional[DatabaseConfig] = None) -> AsyncEngine:
    """Create an async engine for the configured database URL."""
    database_config = database_config or get_config().database
    url = database_config.url
    logger.info(f"Creating database engine for {url.split('://')[0]}")
    return create_async_engine(url, **get_engine_kwargs(url, database_config))


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory whose objects stay usable after commit."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create every table registered on the declarative base."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
