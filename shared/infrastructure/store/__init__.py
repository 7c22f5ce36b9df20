"""
Session store and its persistence backends.
"""

from __future__ import annotations

from shared.config.settings import Settings
from shared.config.logging import store_logger as logger
from shared.infrastructure.events.bus import ChangeBus, LocalChangeBus, RedisChangeBus
from .backends import (
    PersistenceBackend,
    InMemoryBackend,
    SqlBackend,
    RedisBackend,
    StoreBackendError,
    QuotaExceededError,
    create_store_engine,
)
from .session_store import SessionStore


def build_backend(settings: Settings) -> PersistenceBackend:
    """Persistence backend selected by ``settings.store_backend``."""
    kind = settings.store_backend.lower()
    if kind == "memory":
        return InMemoryBackend(quota_bytes=settings.store_quota_bytes)
    if kind == "sql":
        return SqlBackend.from_url(settings.database_url, quota_bytes=settings.store_quota_bytes)
    if kind == "redis":
        return RedisBackend.from_url(
            settings.redis_url,
            namespace=settings.redis_key_prefix,
            quota_bytes=settings.store_quota_bytes,
            socket_timeout=settings.redis_socket_timeout,
        )
    raise ValueError(f"Unknown store backend: {settings.store_backend}")


def build_change_bus(settings: Settings) -> ChangeBus:
    """Change bus selected by ``settings.change_bus_backend``."""
    kind = settings.change_bus_backend.lower()
    if kind == "local":
        return LocalChangeBus()
    if kind == "redis":
        return RedisChangeBus.from_url(
            settings.redis_url,
            channel_prefix=settings.change_bus_channel_prefix,
            poll_timeout=settings.change_bus_poll_timeout,
            socket_timeout=settings.redis_socket_timeout,
        )
    raise ValueError(f"Unknown change bus backend: {settings.change_bus_backend}")


def build_session_store(settings: Settings) -> SessionStore:
    """Construct the process-wide session store from configuration."""
    store = SessionStore(build_backend(settings), build_change_bus(settings))
    logger.info(
        "Session store ready",
        backend=settings.store_backend,
        change_bus=settings.change_bus_backend,
    )
    return store


__all__ = [
    "PersistenceBackend",
    "InMemoryBackend",
    "SqlBackend",
    "RedisBackend",
    "StoreBackendError",
    "QuotaExceededError",
    "create_store_engine",
    "SessionStore",
    "build_backend",
    "build_change_bus",
    "build_session_store",
]
