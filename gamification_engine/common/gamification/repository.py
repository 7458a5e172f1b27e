"""
Gamification Repository

This module is the boundary to the user-record store. Every backend offers
the same four operations:

1. ``create`` - insert the initial state for a new user
2. ``read`` - point read returning the state and its version token
3. ``write`` - conditional write that only applies while the stored version
   still matches the one read, raising ``ConcurrencyConflictError`` otherwise
4. ``delete`` - drop the state together with the owning user

Backends translate their driver errors into ``StoreUnavailableError`` so the
service never has to know which store it talks to.
"""

import asyncio
import dataclasses
from abc import ABC, abstractmethod
from typing import Dict, Optional

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError, WatchError
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from gamification_engine.common.db import create_session_factory, create_tables
from gamification_engine.common.exceptions import (
    ConcurrencyConflictError,
    DuplicateError,
    StoreUnavailableError,
    UserNotFoundError,
)
from gamification_engine.common.gamification.database_models import UserGameStateRecord
from gamification_engine.common.gamification.models import UserGameState, utcnow
from gamification_engine.common.logger import app_logger, log_execution_time

# Set up module logger
logger = app_logger.getChild("gamification.repository")


class UserStateStore(ABC):
    """Abstract store for per-user game state with optimistic concurrency."""

    @abstractmethod
    async def create(self, user_id: str) -> UserGameState:
        """
        Create the initial state for a user.

        Raises:
            DuplicateError: If the user already has state
        """

    @abstractmethod
    async def read(self, user_id: str) -> UserGameState:
        """
        Read a user's state together with its version token.

        Raises:
            UserNotFoundError: If the user has no state
        """

    @abstractmethod
    async def write(self, state: UserGameState, expected_version: int) -> UserGameState:
        """
        Replace a user's state if nobody wrote since ``expected_version``.

        XP, level and badges are written together or not at all.

        Returns:
            The committed state carrying its new version

        Raises:
            ConcurrencyConflictError: If the stored version moved on
            UserNotFoundError: If the state disappeared since it was read
        """

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Delete a user's state. Returns False if there was none."""

    async def close(self) -> None:
        """Release connections held by the store."""


class InMemoryUserStateStore(UserStateStore):
    """
    Dict-backed store for tests and single-process deployments.

    Reads hand out copies, so callers can never change stored state without
    going through ``write``.
    """

    def __init__(self):
        self._records: Dict[str, UserGameState] = {}
        self._lock = asyncio.Lock()

    async def create(self, user_id: str) -> UserGameState:
        async with self._lock:
            if user_id in self._records:
                raise DuplicateError("UserGameState", user_id)
            state = UserGameState.initial(user_id)
            self._records[user_id] = state
            return dataclasses.replace(state)

    async def read(self, user_id: str) -> UserGameState:
        # Yield like a real round trip would, so concurrent callers interleave
        await asyncio.sleep(0)
        state = self._records.get(user_id)
        if state is None:
            raise UserNotFoundError(user_id)
        return dataclasses.replace(state)

    async def write(self, state: UserGameState, expected_version: int) -> UserGameState:
        await asyncio.sleep(0)
        async with self._lock:
            current = self._records.get(state.user_id)
            if current is None:
                raise UserNotFoundError(state.user_id)
            if current.version != expected_version:
                raise ConcurrencyConflictError(state.user_id, expected_version)

            committed = dataclasses.replace(
                state,
                version=current.version + 1,
                updated_at=utcnow()
            )
            self._records[state.user_id] = committed
            return dataclasses.replace(committed)

    async def delete(self, user_id: str) -> bool:
        async with self._lock:
            return self._records.pop(user_id, None) is not None


class RedisUserStateStore(UserStateStore):
    """
    Store keeping one JSON document per user in Redis.

    Conditional writes run inside a WATCH/MULTI/EXEC transaction: the key is
    watched, the stored version compared, and EXEC aborts if anyone touched
    the key in between.
    """

    def __init__(self, redis_client: AsyncRedis, key_prefix: str = "gamification:user:"):
        """
        Initialize the Redis store.

        Args:
            redis_client: asyncio Redis client
            key_prefix: Prefix for per-user keys
        """
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _key(self, user_id: str) -> str:
        return f"{self.key_prefix}{user_id}"

    @staticmethod
    def _decode(raw, operation: str) -> UserGameState:
        try:
            return UserGameState.from_json(raw)
        except (ValueError, TypeError) as e:
            logger.error(f"Unreadable game state document during {operation}: {e}")
            raise StoreUnavailableError(operation, e) from e

    @log_execution_time(logger)
    async def create(self, user_id: str) -> UserGameState:
        state = UserGameState.initial(user_id)
        try:
            created = await self.redis.set(self._key(user_id), state.to_json(), nx=True)
        except RedisError as e:
            raise StoreUnavailableError("create", e) from e
        if not created:
            raise DuplicateError("UserGameState", user_id)
        return state

    @log_execution_time(logger)
    async def read(self, user_id: str) -> UserGameState:
        try:
            raw = await self.redis.get(self._key(user_id))
        except RedisError as e:
            raise StoreUnavailableError("read", e) from e
        if raw is None:
            raise UserNotFoundError(user_id)
        return self._decode(raw, "read")

    @log_execution_time(logger)
    async def write(self, state: UserGameState, expected_version: int) -> UserGameState:
        key = self._key(state.user_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                raw = await pipe.get(key)
                if raw is None:
                    raise UserNotFoundError(state.user_id)
                current = self._decode(raw, "write")
                if current.version != expected_version:
                    raise ConcurrencyConflictError(state.user_id, expected_version)

                committed = dataclasses.replace(
                    state,
                    version=expected_version + 1,
                    updated_at=utcnow()
                )
                pipe.multi()
                pipe.set(key, committed.to_json())
                await pipe.execute()
                return committed
        except WatchError as e:
            raise ConcurrencyConflictError(state.user_id, expected_version) from e
        except RedisError as e:
            raise StoreUnavailableError("write", e) from e

    async def delete(self, user_id: str) -> bool:
        try:
            return bool(await self.redis.delete(self._key(user_id)))
        except RedisError as e:
            raise StoreUnavailableError("delete", e) from e

    async def close(self) -> None:
        try:
            await self.redis.aclose()
        except RedisError as e:
            logger.error(f"Error closing Redis connection: {e}")


class SQLUserStateStore(UserStateStore):
    """
    Store keeping one row per user in a SQL table.

    Conditional writes are a single ``UPDATE ... WHERE version = :expected``;
    zero affected rows means another writer got there first.
    """

    def __init__(self, engine: AsyncEngine, session_factory: Optional[async_sessionmaker] = None):
        """
        Initialize the SQL store.

        Args:
            engine: Async SQLAlchemy engine
            session_factory: Session factory, built from the engine when omitted
        """
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)

    async def initialize(self) -> None:
        """Create the backing table if it does not exist."""
        try:
            await create_tables(self.engine)
        except SQLAlchemyError as e:
            raise StoreUnavailableError("initialize", e) from e

    @staticmethod
    def _to_state(record: UserGameStateRecord) -> UserGameState:
        return UserGameState(
            user_id=record.user_id,
            total_xp=record.total_xp,
            level=record.level,
            badges=record.badges or (),
            version=record.version,
            updated_at=record.updated_at
        )

    @log_execution_time(logger)
    async def create(self, user_id: str) -> UserGameState:
        state = UserGameState.initial(user_id)
        record = UserGameStateRecord(
            user_id=user_id,
            total_xp=state.total_xp,
            level=state.level,
            badges=[],
            version=state.version,
            updated_at=state.updated_at
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(record)
        except IntegrityError as e:
            raise DuplicateError("UserGameState", user_id) from e
        except SQLAlchemyError as e:
            raise StoreUnavailableError("create", e) from e
        return state

    @log_execution_time(logger)
    async def read(self, user_id: str) -> UserGameState:
        try:
            async with self.session_factory() as session:
                record = await session.get(UserGameStateRecord, user_id)
        except SQLAlchemyError as e:
            raise StoreUnavailableError("read", e) from e
        if record is None:
            raise UserNotFoundError(user_id)
        return self._to_state(record)

    @log_execution_time(logger)
    async def write(self, state: UserGameState, expected_version: int) -> UserGameState:
        committed = dataclasses.replace(state, version=expected_version + 1, updated_at=utcnow())
        stmt = (
            update(UserGameStateRecord)
            .where(
                UserGameStateRecord.user_id == state.user_id,
                UserGameStateRecord.version == expected_version
            )
            .values(
                total_xp=committed.total_xp,
                level=committed.level,
                badges=sorted(committed.badges),
                version=committed.version,
                updated_at=committed.updated_at
            )
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    if result.rowcount == 0:
                        exists = await session.scalar(
                            select(UserGameStateRecord.user_id)
                            .where(UserGameStateRecord.user_id == state.user_id)
                        )
                        if exists is None:
                            raise UserNotFoundError(state.user_id)
                        raise ConcurrencyConflictError(state.user_id, expected_version)
        except SQLAlchemyError as e:
            raise StoreUnavailableError("write", e) from e
        return committed

    async def delete(self, user_id: str) -> bool:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(UserGameStateRecord).where(UserGameStateRecord.user_id == user_id)
                    )
        except SQLAlchemyError as e:
            raise StoreUnavailableError("delete", e) from e
        return result.rowcount > 0

    async def close(self) -> None:
        await self.engine.dispose()
