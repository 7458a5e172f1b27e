"""
Database Module

Async SQLAlchemy engine, sessions and the declarative base for the SQL
user state store.
"""

from gamification_engine.common.db.base import Base, ModelBase
from gamification_engine.common.db.session import (
    create_engine,
    create_session_factory,
    create_tables,
    AsyncSession,
)

__all__ = [
    'Base',
    'ModelBase',
    'create_engine',
    'create_session_factory',
    'create_tables',
    'AsyncSession',
]
