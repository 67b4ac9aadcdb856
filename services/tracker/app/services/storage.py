"""Persistence gateway: tracked codes stored as one JSON blob in a key-value store."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager, nullcontext

import redis.asyncio as redis
import structlog
from pydantic import TypeAdapter, ValidationError
from qrtrack_shared import TrackedCode
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.core.database import async_session_factory
from app.core.exceptions import PersistenceReadError, PersistenceWriteError
from app.core.observability import record_storage_error
from app.core.redis import get_redis
from app.models.kv_entry import KeyValueEntry

logger = structlog.get_logger()

DEFAULT_STORAGE_KEY = "qr_codes_data"

_codes_adapter = TypeAdapter(list[TrackedCode])


class KeyValueStore(ABC):
    """Minimal async key-value store holding text values."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value under `key`, or None if it was never written."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Replace the value under `key`."""

    def lock(self, key: str) -> AbstractAsyncContextManager:
        """Cross-process lock for `key`. Local stores need none."""
        return nullcontext()


class SqlKeyValueStore(KeyValueStore):
    """Key-value store on a single SQLAlchemy table (SQLite by default)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> str | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(KeyValueEntry.value).where(KeyValueEntry.key == key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            record_storage_error("read")
            logger.error("Store read failed", key=key, error=str(e))
            raise PersistenceReadError(f"Failed to read '{key}' from database") from e

    async def set(self, key: str, value: str) -> None:
        try:
            async with self._session_factory() as session:
                try:
                    entry = await session.get(KeyValueEntry, key)
                    if entry is None:
                        session.add(KeyValueEntry(key=key, value=value))
                    else:
                        entry.value = value
                    await session.commit()
                except SQLAlchemyError:
                    await session.rollback()
                    raise
        except SQLAlchemyError as e:
            record_storage_error("write")
            logger.error("Store write failed", key=key, error=str(e))
            raise PersistenceWriteError(f"Failed to write '{key}' to database") from e


class RedisKeyValueStore(KeyValueStore):
    """Key-value store on Redis string keys.

    Writers in other processes are serialized with a redis-py lock.
    """

    LOCK_SUFFIX = ":lock"

    def __init__(self, client: redis.Redis, lock_timeout: float = 10.0):
        self._client = client
        self._lock_timeout = lock_timeout

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except redis.RedisError as e:
            record_storage_error("read")
            logger.error("Redis get error", key=key, error=str(e))
            raise PersistenceReadError(f"Failed to read '{key}' from Redis") from e
        except UnicodeDecodeError as e:
            record_storage_error("read")
            logger.error("Redis value is not UTF-8", key=key, error=str(e))
            raise PersistenceReadError(f"Stored value for '{key}' is not valid UTF-8") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(key, value)
        except redis.RedisError as e:
            record_storage_error("write")
            logger.error("Redis set error", key=key, error=str(e))
            raise PersistenceWriteError(f"Failed to write '{key}' to Redis") from e

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        lock = self._client.lock(
            f"{key}{self.LOCK_SUFFIX}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_timeout,
        )
        try:
            acquired = await lock.acquire()
        except redis.RedisError as e:
            record_storage_error("write")
            raise PersistenceWriteError(f"Failed to lock '{key}' in Redis") from e
        if not acquired:
            record_storage_error("write")
            raise PersistenceWriteError(f"Timed out waiting for the lock on '{key}'")

        try:
            yield
        finally:
            try:
                await lock.release()
            except redis.RedisError as e:
                logger.warning("Redis lock released late", key=key, error=str(e))


def encode_codes(codes: Sequence[TrackedCode]) -> str:
    """Serialize codes to the persisted JSON array (ISO-8601 instants)."""
    return _codes_adapter.dump_json(list(codes)).decode("utf-8")


def decode_codes(raw: str) -> list[TrackedCode]:
    """Parse the persisted JSON array back into codes."""
    return _codes_adapter.validate_json(raw)


class CodeRepository:
    """Load-all / save-all access to every tracked code.

    Nothing is cached between calls. Every read-modify-write must go through
    `transaction()`, which is the single mutual-exclusion point for the set.

    Usage:
        repository = CodeRepository(SqlKeyValueStore(async_session_factory))
        codes = await repository.load_all()

        async with repository.transaction() as codes:
            codes.append(new_code)  # saved when the block exits cleanly
    """

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_STORAGE_KEY):
        self._store = store
        self._key = key
        self._lock = asyncio.Lock()

    @property
    def store(self) -> KeyValueStore:
        return self._store

    async def load_all(self) -> list[TrackedCode]:
        """Fetch every tracked code from the store."""
        raw = await self._store.get(self._key)
        if raw is None:
            return []
        try:
            return decode_codes(raw)
        except ValidationError as e:
            record_storage_error("read")
            logger.error(
                "Stored codes are corrupted",
                key=self._key,
                errors=e.error_count(),
            )
            raise PersistenceReadError(f"Stored data under '{self._key}' is corrupted") from e

    async def save_all(self, codes: Sequence[TrackedCode]) -> None:
        """Replace the whole stored set with `codes`."""
        await self._store.set(self._key, encode_codes(codes))
        logger.debug("Codes saved", key=self._key, count=len(codes))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[list[TrackedCode]]:
        """Serialized load-modify-save over the whole set.

        Yields the loaded list for in-place mutation. It is saved when the
        block exits normally and the set changed; an exception discards the
        changes.
        """
        async with self._lock:
            async with self._store.lock(self._key):
                codes = await self.load_all()
                before = encode_codes(codes)
                yield codes
                after = encode_codes(codes)
                if after != before:
                    await self._store.set(self._key, after)
                    logger.debug("Codes saved", key=self._key, count=len(codes))


# Global repository instance
_repository: CodeRepository | None = None


async def get_code_repository() -> CodeRepository:
    """Get the global repository, building the configured store on first use."""
    global _repository
    if _repository is None:
        settings = get_settings()
        if settings.storage_backend == "redis":
            store: KeyValueStore = RedisKeyValueStore(
                await get_redis(),
                lock_timeout=settings.redis_lock_timeout,
            )
        else:
            store = SqlKeyValueStore(async_session_factory)
        _repository = CodeRepository(store, key=settings.storage_key)
        logger.info(
            "Code repository initialized",
            backend=settings.storage_backend,
            key=settings.storage_key,
        )
    return _repository


async def close_code_repository() -> None:
    """Drop the global repository; the next request builds a fresh one."""
    global _repository
    _repository = None
