"""
Workstation refresher.

Keeps a workstation's view fresh: it reloads when one of the workstation's
change topics fires and, as a fallback for missed topics, every
``interval`` seconds. The clock is injectable so the timer can be driven
by ``tick()`` in tests; ``run()`` drives it with asyncio.
"""

import asyncio
import threading
import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from shared.config.logging import get_logger
from shared.config.settings import get_settings
from shared.infrastructure.events import WORKSTATION_TOPICS, ChangeBus, Unsubscribe

logger = get_logger(__name__)

T = TypeVar("T")


class WorkstationRefresher(Generic[T]):
    """
    Usage:
        refresher = WorkstationRefresher("kitchen", load_orders, store.bus)
        task = asyncio.create_task(refresher.run())
        ...
        refresher.close()
    """

    def __init__(
        self,
        kind: str,
        load: Callable[[], T],
        bus: ChangeBus,
        clock: Callable[[], float] = time.monotonic,
        interval: float | None = None,
    ):
        if kind not in WORKSTATION_TOPICS:
            raise ValueError(f"Unknown workstation: {kind}")

        self.kind = kind
        self.interval = interval if interval is not None else get_settings().refresh_interval_for(kind)
        if self.interval <= 0:
            raise ValueError(f"Refresh interval must be positive: {self.interval}")
        self.snapshot: T | None = None
        self.reloads = 0
        self.last_error: str | None = None

        self._load = load
        self._clock = clock
        self._lock = threading.Lock()
        self._closed = False
        # Due immediately: the first tick loads the view
        self._next_due = clock()
        self._unsubscribes: list[Unsubscribe] = [
            bus.subscribe(topic, self._on_change) for topic in WORKSTATION_TOPICS[kind]
        ]

    @property
    def topics(self) -> list[str]:
        return list(WORKSTATION_TOPICS[self.kind])

    @property
    def closed(self) -> bool:
        return self._closed

    def seconds_until_due(self) -> float:
        return max(0.0, self._next_due - self._clock())

    def refresh(self, reason: str = "manual") -> T | None:
        """
        Reload now and restart the timer.

        A failing load keeps the previous snapshot and records the error; the
        next topic or tick tries again.
        """
        with self._lock:
            try:
                self.snapshot = self._load()
                self.last_error = None
            except Exception as e:
                self.last_error = str(e)
                logger.error("Workstation reload failed", workstation=self.kind, reason=reason, error=str(e))
            self.reloads += 1
            self._next_due = self._clock() + self.interval
            return self.snapshot

    def tick(self) -> bool:
        """Reload if the timer is due. Returns True when a reload happened."""
        if self._closed or self._clock() < self._next_due:
            return False
        self.refresh("timer")
        return True

    async def run(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        """Timer loop until ``close()``."""
        while not self._closed:
            self.tick()
            await sleep(self.seconds_until_due())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes.clear()
        logger.debug("Workstation refresher closed", workstation=self.kind, reloads=self.reloads)

    def _on_change(self, topic: str) -> None:
        if not self._closed:
            self.refresh(topic)
