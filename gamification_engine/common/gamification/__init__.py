"""
Gamification Package

This package turns learning activity into progression:
- XP and the level curve
- Level milestone badges and achievement tiers
- The optimistic award transaction over the user state store

Import the service from here; the submodules hold the pieces it is built from.
"""

from gamification_engine.common.gamification.catalog import (
    AchievementDefinition,
    BadgeDefinition,
    GamificationCatalog,
    DEFAULT_CATALOG,
    LEVEL_ACHIEVEMENTS,
    LEVEL_BADGES,
)
from gamification_engine.common.gamification.level_curve import (
    MAX_LEVEL,
    level_from_xp,
    threshold,
)
from gamification_engine.common.gamification.models import (
    AwardResult,
    GamificationStats,
    UserGameState,
)
from gamification_engine.common.gamification.repository import (
    InMemoryUserStateStore,
    RedisUserStateStore,
    SQLUserStateStore,
    UserStateStore,
)
from gamification_engine.common.gamification.service import (
    GamificationService,
    get_gamification_service,
    initialize_gamification_service,
    shutdown_gamification_service,
)

__all__ = [
    'AchievementDefinition',
    'BadgeDefinition',
    'GamificationCatalog',
    'DEFAULT_CATALOG',
    'LEVEL_ACHIEVEMENTS',
    'LEVEL_BADGES',
    'MAX_LEVEL',
    'level_from_xp',
    'threshold',
    'AwardResult',
    'GamificationStats',
    'UserGameState',
    'InMemoryUserStateStore',
    'RedisUserStateStore',
    'SQLUserStateStore',
    'UserStateStore',
    'GamificationService',
    'get_gamification_service',
    'initialize_gamification_service',
    'shutdown_gamification_service',
]
