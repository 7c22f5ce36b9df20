"""
Persistence backends for the session store.

A backend is a plain string key/value map. It knows nothing about JSON,
topics or domain records; ``SessionStore`` layers those on top.

Backends:
- InMemoryBackend: process-local dict (tests, single-process demos)
- SqlBackend: one SQLAlchemy table, durable across restarts
- RedisBackend: shared by every process pointing at the same Redis

Driver errors are wrapped in ``StoreBackendError``; a value that does not fit
the configured quota raises ``QuotaExceededError``.
"""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING

import redis
import redis.exceptions
from sqlalchemy import DateTime, Text, create_engine, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from shared.config.logging import store_logger as logger

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class StoreBackendError(Exception):
    """The backend could not complete the operation."""


class QuotaExceededError(StoreBackendError):
    """The value does not fit in the backend quota."""

    def __init__(self, key: str, size: int, quota: int):
        self.key = key
        self.size = size
        self.quota = quota
        super().__init__(f"Value for {key} is {size} bytes, quota is {quota} bytes")


class PersistenceBackend(ABC):
    """String key/value persistence."""

    def __init__(self, quota_bytes: int | None = None):
        self.quota_bytes = quota_bytes

    def check_quota(self, key: str, value: str) -> None:
        if self.quota_bytes is None:
            return
        size = len(value.encode("utf-8"))
        if size > self.quota_bytes:
            raise QuotaExceededError(key, size, self.quota_bytes)

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        ...

    def close(self) -> None:
        """Release connections. No-op by default."""


# =============================================================================
# In-memory
# =============================================================================


class InMemoryBackend(PersistenceBackend):
    """Process-local dict. Each instance is isolated, so tests never share state."""

    def __init__(self, quota_bytes: int | None = None):
        super().__init__(quota_bytes)
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self.check_quota(key, value)
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))


# =============================================================================
# SQL (SQLAlchemy)
# =============================================================================


class Base(DeclarativeBase):
    """Base class for store tables."""

    pass


class StoreEntry(Base):
    """One persisted key."""

    __tablename__ = "store_entry"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<StoreEntry(key='{self.key}', size={len(self.value)})>"


def create_store_engine(database_url: str) -> "Engine":
    """
    Create the engine for the SQL backend.
    In-memory SQLite needs a single shared connection to keep its data.
    """
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_timeout=30,
        pool_recycle=1800,
    )


class SqlBackend(PersistenceBackend):
    """Key/value table behind SQLAlchemy. Creates its table on construction."""

    def __init__(self, engine: "Engine", quota_bytes: int | None = None):
        super().__init__(quota_bytes)
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
        Base.metadata.create_all(bind=engine)

    @classmethod
    def from_url(cls, database_url: str, quota_bytes: int | None = None) -> "SqlBackend":
        return cls(create_store_engine(database_url), quota_bytes=quota_bytes)

    def _session(self) -> Session:
        return self._session_factory()

    def get(self, key: str) -> str | None:
        try:
            with self._session() as db:
                return db.scalar(select(StoreEntry.value).where(StoreEntry.key == key))
        except SQLAlchemyError as e:
            raise StoreBackendError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        self.check_quota(key, value)
        try:
            with self._session() as db:
                entry = db.get(StoreEntry, key)
                if entry is None:
                    db.add(StoreEntry(key=key, value=value))
                else:
                    entry.value = value
                _safe_commit(db)
        except SQLAlchemyError as e:
            raise StoreBackendError(f"Failed to write {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            with self._session() as db:
                db.execute(delete(StoreEntry).where(StoreEntry.key == key))
                _safe_commit(db)
        except SQLAlchemyError as e:
            raise StoreBackendError(f"Failed to delete {key}: {e}") from e

    def keys(self, prefix: str = "") -> list[str]:
        try:
            with self._session() as db:
                query = select(StoreEntry.key).order_by(StoreEntry.key)
                if prefix:
                    query = query.where(StoreEntry.key.startswith(prefix, autoescape=True))
                return list(db.scalars(query))
        except SQLAlchemyError as e:
            raise StoreBackendError(f"Failed to list keys with prefix {prefix}: {e}") from e

    def close(self) -> None:
        self._engine.dispose()


def _safe_commit(db: Session) -> None:
    """Commit with automatic rollback on failure. Re-raises the original exception."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


# =============================================================================
# Redis
# =============================================================================


# Characters SCAN MATCH treats as glob syntax
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


class RedisBackend(PersistenceBackend):
    """
    Keys stored as plain Redis strings under a namespace prefix.
    Every process connected to the same Redis sees the same data (last write wins).
    """

    def __init__(
        self,
        client: "redis.Redis",
        namespace: str = "ops:store:",
        quota_bytes: int | None = None,
    ):
        super().__init__(quota_bytes)
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_url(
        cls,
        redis_url: str,
        namespace: str = "ops:store:",
        quota_bytes: int | None = None,
        socket_timeout: int = 5,
    ) -> "RedisBackend":
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
            health_check_interval=30,
        )
        logger.info("Redis store backend initialized", namespace=namespace)
        return cls(client, namespace=namespace, quota_bytes=quota_bytes)

    def _full_key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(self._full_key(key))
        except redis.exceptions.RedisError as e:
            raise StoreBackendError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        self.check_quota(key, value)
        try:
            self._client.set(self._full_key(key), value)
        except redis.exceptions.ResponseError as e:
            # Redis at maxmemory with a noeviction policy answers "OOM ..."
            if str(e).startswith("OOM"):
                raise QuotaExceededError(key, len(value.encode("utf-8")), self.quota_bytes or 0) from e
            raise StoreBackendError(f"Failed to write {key}: {e}") from e
        except redis.exceptions.RedisError as e:
            raise StoreBackendError(f"Failed to write {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._full_key(key))
        except redis.exceptions.RedisError as e:
            raise StoreBackendError(f"Failed to delete {key}: {e}") from e

    def keys(self, prefix: str = "") -> list[str]:
        try:
            offset = len(self._namespace)
            pattern = _GLOB_SPECIAL.sub(r"\\\1", self._full_key(prefix))
            found = self._client.scan_iter(match=f"{pattern}*", count=200)
            return sorted(k[offset:] for k in found)
        except redis.exceptions.RedisError as e:
            raise StoreBackendError(f"Failed to list keys with prefix {prefix}: {e}") from e

    def close(self) -> None:
        self._client.close()
