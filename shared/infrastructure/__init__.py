"""
Infrastructure layer: session store persistence and the change bus.
"""

from shared.infrastructure.events import ChangeBus, LocalChangeBus, RedisChangeBus
from shared.infrastructure.store import (
    SessionStore,
    InMemoryBackend,
    SqlBackend,
    RedisBackend,
    build_session_store,
)

__all__ = [
    "ChangeBus",
    "LocalChangeBus",
    "RedisChangeBus",
    "SessionStore",
    "InMemoryBackend",
    "SqlBackend",
    "RedisBackend",
    "build_session_store",
]
