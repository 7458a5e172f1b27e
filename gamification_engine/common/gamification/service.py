"""
Gamification Service Module

This module provides the service layer of the engine:
1. The XP award transaction (read, recompute level and badges, conditional write)
2. Direct badge administration
3. Read-only stats and pure catalog lookups for presentation layers

Writes for one user are serialized in-process by a per-user lock and
protected across processes by the store's version check; a lost race
restarts the whole read-modify-write.
"""

import asyncio
import dataclasses
import random
import weakref
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

from gamification_engine.common.config import AppConfig, GamificationConfig, get_config
from gamification_engine.common.exceptions import (
    ConcurrencyConflictError,
    InvalidInputError,
)
from gamification_engine.common.gamification import level_curve, resolver
from gamification_engine.common.gamification.catalog import (
    AchievementDefinition,
    BadgeDefinition,
    GamificationCatalog,
    DEFAULT_CATALOG,
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
from gamification_engine.common.logger import LoggerAdapter, app_logger

# Set up module logger
logger = app_logger.getChild("gamification.service")

T = TypeVar('T')


class GamificationService:
    """
    Service for XP, levels, badges and achievements.

    The badge/achievement catalog is injected so the tables can change
    without touching award logic.
    """

    def __init__(
        self,
        store: UserStateStore,
        catalog: GamificationCatalog = DEFAULT_CATALOG,
        settings: Optional[GamificationConfig] = None
    ):
        """
        Initialize the gamification service.

        Args:
            store: User state store to read from and write to
            catalog: Badge and achievement tables
            settings: Retry budget, backoff and level cap
        """
        self.store = store
        self.catalog = catalog
        self.settings = settings or GamificationConfig()
        self._user_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    async def _run_with_retries(
        self,
        user_id: str,
        operation: Callable[[], Awaitable[T]]
    ) -> T:
        """
        Run a read-modify-write, restarting it on version conflicts.

        Raises:
            ConcurrencyConflictError: Once ``max_retries`` attempts all lost
        """
        max_attempts = self.settings.max_retries
        lock = self._lock_for(user_id)

        attempt = 0
        async with lock:
            while True:
                attempt += 1
                try:
                    return await operation()
                except ConcurrencyConflictError as e:
                    if attempt >= max_attempts:
                        logger.error(
                            f"Giving up on user {user_id} after {attempt} conflicting attempts"
                        )
                        raise ConcurrencyConflictError(user_id, e.expected_version, attempt) from e
                    logger.debug(f"Version conflict for user {user_id} (attempt {attempt}), retrying")
                    backoff = self.settings.retry_backoff_seconds
                    if backoff:
                        await asyncio.sleep(random.uniform(0, backoff * attempt))

    # Lifecycle

    async def register_user(self, user_id: str) -> UserGameState:
        """Create the initial game state for a new user."""
        state = await self.store.create(user_id)
        logger.info(f"Created game state for user {user_id}")
        return state

    async def delete_user(self, user_id: str) -> bool:
        """Remove a user's game state along with the user."""
        return await self.store.delete(user_id)

    # Award transaction

    async def award_xp(
        self,
        user_id: str,
        xp_amount: int,
        reason: Optional[str] = None
    ) -> AwardResult:
        """
        Add XP to a user, recompute the level and grant newly earned badges.

        XP, level and badges are committed in one conditional write. Awarding
        zero XP is a valid no-op that writes nothing.

        Args:
            user_id: User identifier
            xp_amount: Non-negative amount of XP to add
            reason: Free-form reason, only logged

        Returns:
            The committed totals, whether the level went up and which
            badges were awarded

        Raises:
            InvalidInputError: If ``xp_amount`` is negative or not an integer
            UserNotFoundError: If the user has no game state
            ConcurrencyConflictError: If every retry lost to another writer
            StoreUnavailableError: If the store failed
        """
        if isinstance(xp_amount, bool) or not isinstance(xp_amount, int):
            raise InvalidInputError(f"XP amount must be an integer, got {xp_amount!r}", field="xp_amount")
        if xp_amount < 0:
            raise InvalidInputError(f"XP amount must not be negative, got {xp_amount}", field="xp_amount")

        log = LoggerAdapter(logger, {"user_id": user_id, "xp_amount": xp_amount, "reason": reason})

        async def attempt() -> AwardResult:
            state = await self.store.read(user_id)

            if xp_amount == 0:
                return AwardResult(
                    user_id=user_id,
                    new_total_xp=state.total_xp,
                    new_level=state.level,
                    level_up=False
                )

            new_total_xp = state.total_xp + xp_amount
            new_level = level_curve.level_from_xp(new_total_xp, self.settings.max_level)
            level_up = new_level > state.level

            badges = state.badges
            newly_awarded = []
            if level_up:
                badges, newly_awarded = resolver.check_and_award_level_badges(
                    state.badges, new_level, self.catalog
                )

            await self.store.write(
                dataclasses.replace(state, total_xp=new_total_xp, level=new_level, badges=badges),
                expected_version=state.version
            )
            return AwardResult(
                user_id=user_id,
                new_total_xp=new_total_xp,
                new_level=new_level,
                level_up=level_up,
                newly_awarded_badges=newly_awarded,
                xp_awarded=xp_amount
            )

        result = await self._run_with_retries(user_id, attempt)

        log.info(f"Awarded {xp_amount} XP to user {user_id} ({reason or 'no reason given'})")
        if result.level_up:
            log.info(f"User {user_id} reached level {result.new_level}")
        if result.newly_awarded_badges:
            log.info(f"User {user_id} earned badges {', '.join(result.newly_awarded_badges)}")

        return result

    # Direct badge administration

    async def award_badge(self, user_id: str, badge_id: str) -> UserGameState:
        """
        Grant a catalog badge regardless of level.

        Granting a badge the user already holds changes nothing.

        Raises:
            InvalidInputError: If the badge is not in the catalog
            UserNotFoundError: If the user has no game state
        """
        if not self.catalog.has_badge(badge_id):
            raise InvalidInputError(f"Unknown badge {badge_id}", field="badge_id")

        async def attempt() -> Tuple[UserGameState, bool]:
            state = await self.store.read(user_id)
            if badge_id in state.badges:
                return state, False
            committed = await self.store.write(
                dataclasses.replace(state, badges=state.badges | {badge_id}),
                expected_version=state.version
            )
            return committed, True

        state, changed = await self._run_with_retries(user_id, attempt)
        if changed:
            logger.info(f"Badge {badge_id} granted to user {user_id}")
        return state

    async def remove_badge(self, user_id: str, badge_id: str) -> UserGameState:
        """
        Take a badge away from a user.

        Removing a badge the user does not hold changes nothing. Ids outside
        the catalog are accepted so retired badges can be cleaned up.

        Raises:
            UserNotFoundError: If the user has no game state
        """
        async def attempt() -> Tuple[UserGameState, bool]:
            state = await self.store.read(user_id)
            if badge_id not in state.badges:
                return state, False
            committed = await self.store.write(
                dataclasses.replace(state, badges=state.badges - {badge_id}),
                expected_version=state.version
            )
            return committed, True

        state, changed = await self._run_with_retries(user_id, attempt)
        if changed:
            logger.info(f"Badge {badge_id} removed from user {user_id}")
        return state

    # Query surface

    async def get_user_gamification_stats(self, user_id: str) -> GamificationStats:
        """
        Get a user's XP, level, badges and achievement tiers.

        Raises:
            UserNotFoundError: If the user has no game state
        """
        state = await self.store.read(user_id)
        current = self.get_achievement_for_level(state.level)
        return GamificationStats(
            user_id=user_id,
            total_xp=state.total_xp,
            level=state.level,
            badges=sorted(state.badges, key=self._badge_sort_key),
            achievements=resolver.achievements_reached(state.level, self.catalog),
            current_achievement=current.achievement_id if current else None,
            level_progress=level_curve.level_progress(state.total_xp, self.settings.max_level)
        )

    def _badge_sort_key(self, badge_id: str):
        # Catalog badges by trigger level, then anything granted outside the catalog
        badge = self.catalog.get_badge(badge_id)
        if badge is None:
            return (1, 0, badge_id)
        return (0, badge.trigger_level, badge_id)

    def get_achievement_for_level(self, level: int) -> Optional[AchievementDefinition]:
        return resolver.resolve_achievement_for_level(level, self.catalog)

    def get_badge_info(self, badge_id: str) -> Optional[BadgeDefinition]:
        return resolver.get_badge_info(badge_id, self.catalog)

    def is_milestone_level(self, level: int) -> bool:
        return resolver.is_milestone_level(level, self.catalog)

    def get_xp_for_next_level(self, current_level: int) -> int:
        return level_curve.xp_for_next_level(current_level)

    def get_xp_for_current_level(self, current_level: int) -> int:
        return level_curve.xp_for_current_level(current_level)

    async def close(self) -> None:
        await self.store.close()


async def create_store(app_config: Optional[AppConfig] = None) -> UserStateStore:
    """
    Build the user state store selected by configuration.

    Args:
        app_config: Application configuration, defaults to the loaded one

    Returns:
        A ready-to-use store
    """
    app_config = app_config or get_config()
    backend = app_config.gamification.store_backend

    if backend == "redis":
        from gamification_engine.common.redis import get_redis_client
        return RedisUserStateStore(
            get_redis_client(app_config.redis),
            key_prefix=app_config.gamification.redis_key_prefix
        )

    if backend == "sql":
        from gamification_engine.common.db import create_engine
        store = SQLUserStateStore(create_engine(app_config.database))
        await store.initialize()
        return store

    return InMemoryUserStateStore()


# Singleton instance
_gamification_service: Optional[GamificationService] = None


async def initialize_gamification_service(
    app_config: Optional[AppConfig] = None,
    catalog: GamificationCatalog = DEFAULT_CATALOG
) -> GamificationService:
    """
    Create the process-wide service from configuration.

    Returns:
        The initialized service
    """
    global _gamification_service

    app_config = app_config or get_config()
    store = await create_store(app_config)
    _gamification_service = GamificationService(store, catalog, app_config.gamification)
    logger.info(f"Gamification service initialized with {app_config.gamification.store_backend} store")
    return _gamification_service


def get_gamification_service() -> GamificationService:
    """
    Get the process-wide service.

    Raises:
        RuntimeError: If ``initialize_gamification_service`` has not run
    """
    if _gamification_service is None:
        raise RuntimeError("Gamification service not initialized. Call initialize_gamification_service() first.")
    return _gamification_service


async def shutdown_gamification_service() -> None:
    """Close the process-wide service and drop the shared Redis client."""
    global _gamification_service

    if _gamification_service is not None:
        await _gamification_service.close()
        _gamification_service = None

    from gamification_engine.common.redis import reset_redis_client
    await reset_redis_client()
