"""
Session store: JSON values over a persistence backend, plus change notification.

The store is constructed once per process with an injected backend and change
bus. It is the single source of truth; services read it fresh on every
operation instead of caching records.

Guarantees:
- ``read`` never raises. A missing key, a corrupted value or a backend failure
  all return the caller's default.
- ``write`` returns ``False`` instead of raising when the value does not fit
  the quota or the backend fails. The previously stored value is kept.
- A successful write publishes its topic on the change bus.
- ``transaction()`` serializes read-modify-write sequences of this process.
  Other processes sharing the backend are not fenced (last write wins).
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from shared.config.logging import store_logger as logger
from shared.infrastructure.events.bus import ChangeBus, Unsubscribe
from shared.infrastructure.store.backends import (
    PersistenceBackend,
    QuotaExceededError,
    StoreBackendError,
)


class SessionStore:
    """Key/value store of JSON documents with change notification."""

    def __init__(self, backend: PersistenceBackend, bus: ChangeBus):
        self._backend = backend
        self._bus = bus
        self._lock = threading.RLock()

    @property
    def bus(self) -> ChangeBus:
        return self._bus

    @property
    def backend(self) -> PersistenceBackend:
        return self._backend

    def read(self, key: str, default: Any = None) -> Any:
        """
        Deserialize the value stored under ``key``.

        Returns ``default`` when the key is absent or cannot be read.
        """
        try:
            raw = self._backend.get(key)
        except StoreBackendError as e:
            logger.warning("Store read failed, using default", key=key, error=str(e))
            return default

        if raw is None:
            return default

        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Stored value is corrupted, using default", key=key, error=str(e))
            return default

    def write(self, key: str, value: Any, topic: str | None = None) -> bool:
        """
        Serialize and persist ``value``; publish ``topic`` on success.

        Returns False when the value does not fit the quota or the backend
        refuses the write.
        """
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error("Value is not serializable", key=key, error=str(e))
            return False

        try:
            with self._lock:
                self._backend.set(key, raw)
        except QuotaExceededError as e:
            logger.error("Store quota exceeded", key=key, size=e.size, quota=e.quota)
            return False
        except StoreBackendError as e:
            logger.error("Store write failed", key=key, error=str(e))
            return False

        if topic:
            self._bus.publish(topic)
        return True

    def remove(self, key: str, topic: str | None = None) -> bool:
        """Delete ``key``; publish ``topic`` on success. Missing keys are not an error."""
        try:
            with self._lock:
                self._backend.delete(key)
        except StoreBackendError as e:
            logger.error("Store delete failed", key=key, error=str(e))
            return False

        if topic:
            self._bus.publish(topic)
        return True

    def keys(self, prefix: str = "") -> list[str]:
        """Stored keys starting with ``prefix``. Empty on backend failure."""
        try:
            return self._backend.keys(prefix)
        except StoreBackendError as e:
            logger.warning("Store key listing failed", prefix=prefix, error=str(e))
            return []

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the store lock for a read-modify-write sequence."""
        with self._lock:
            yield

    def subscribe(self, topic: str, handler: Callable[[str], None]) -> Unsubscribe:
        """Register ``handler`` for ``topic`` on the change bus."""
        return self._bus.subscribe(topic, handler)

    def close(self) -> None:
        self._bus.close()
        self._backend.close()
