"""
Database models for the SQL user state store.
"""

from sqlalchemy import BigInteger, Column, DateTime, Integer, JSON, String

from gamification_engine.common.db.base import ModelBase


class UserGameStateRecord(ModelBase):
    """One row per user; ``version`` is bumped by every conditional update."""

    __tablename__ = "user_game_state"

    user_id = Column(String(128), primary_key=True)
    total_xp = Column(BigInteger, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    badges = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=True)
