"""
Gamification Models

This module defines the data carried in and out of the engine:
1. The per-user game state projection read from and written to the store
2. The result of an XP award transaction
3. The read-only stats view for presentation layers
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from gamification_engine.common.serialization import SerializableMixin, parse_datetime


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass
class UserGameState(SerializableMixin):
    """
    The XP, level and badge projection of a user record.

    ``version`` is the concurrency token issued by the store on every
    committed write. A conditional write only succeeds while the stored
    version still equals the one that was read.
    """

    __serializable_fields__ = [
        "user_id", "total_xp", "level", "badges", "version", "updated_at"
    ]
    __optional_fields__ = ["total_xp", "level", "badges", "version", "updated_at"]

    user_id: str
    total_xp: int = 0
    level: int = 1
    badges: FrozenSet[str] = field(default_factory=frozenset)
    version: int = 0
    updated_at: Optional[datetime.datetime] = None

    def __post_init__(self):
        """Normalize values coming from stored documents."""
        self.badges = frozenset(self.badges or ())
        self.updated_at = parse_datetime(self.updated_at)

    @classmethod
    def initial(cls, user_id: str) -> 'UserGameState':
        """State of a freshly created user: no XP, level 1, no badges."""
        return cls(user_id=user_id, updated_at=utcnow())


@dataclass
class AwardResult(SerializableMixin):
    """Outcome of a committed XP award."""

    __serializable_fields__ = [
        "user_id", "new_total_xp", "new_level", "level_up", "newly_awarded_badges", "xp_awarded"
    ]

    user_id: str
    new_total_xp: int
    new_level: int
    level_up: bool
    newly_awarded_badges: List[str] = field(default_factory=list)
    xp_awarded: int = 0


@dataclass
class GamificationStats(SerializableMixin):
    """Read-only view of a user's progress."""

    __serializable_fields__ = [
        "user_id", "total_xp", "level", "badges", "achievements",
        "current_achievement", "level_progress"
    ]

    user_id: str
    total_xp: int
    level: int
    badges: List[str]
    achievements: List[str]
    current_achievement: Optional[str]
    level_progress: Dict[str, Any] = field(default_factory=dict)
