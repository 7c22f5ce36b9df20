"""
Change bus: named change topics without payload.

Subscribers always re-read the session store when a topic fires, so a topic
only says "something in this domain changed".

Contract:
- publish/subscribe, ``subscribe`` returns an unsubscribe callable
- at-least-once delivery to handlers registered at publish time
- no replay for handlers registered later (views poll as a fallback)
- no ordering guarantee across processes

Implementations:
- LocalChangeBus: in-process dispatch
- RedisChangeBus: local dispatch plus Redis pub/sub between processes
"""

from __future__ import annotations

import json
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable

import redis
import redis.exceptions

from shared.config.logging import bus_logger as logger

Handler = Callable[[str], None]
Unsubscribe = Callable[[], None]


class ChangeBus(ABC):
    """Abstract publish/subscribe surface."""

    @abstractmethod
    def publish(self, topic: str) -> None:
        ...

    @abstractmethod
    def subscribe(self, topic: str, handler: Handler) -> Unsubscribe:
        ...

    def close(self) -> None:
        """Stop background work. No-op by default."""


class LocalChangeBus(ChangeBus):
    """
    In-process bus. Handlers run synchronously in the publisher's thread, in
    subscription order. A failing handler is logged and does not stop delivery
    to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, topic: str, handler: Handler) -> Unsubscribe:
        with self._lock:
            self._handlers.setdefault(topic, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(topic, [])
                if handler in handlers:
                    handlers.remove(handler)
                if not handlers:
                    self._handlers.pop(topic, None)

        return unsubscribe

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._handlers.get(topic, []))

    def publish(self, topic: str) -> None:
        self.dispatch(topic)

    def dispatch(self, topic: str) -> int:
        """Deliver ``topic`` to the local handlers. Returns how many succeeded."""
        with self._lock:
            handlers = list(self._handlers.get(topic, []))

        delivered = 0
        for handler in handlers:
            try:
                handler(topic)
                delivered += 1
            except Exception as e:
                logger.error(
                    "Change handler failed",
                    topic=topic,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                    exc_info=True,
                )
        return delivered


class RedisChangeBus(LocalChangeBus):
    """
    Local dispatch plus Redis pub/sub fan-out.

    ``publish`` delivers to this process immediately (program order is kept
    for the publisher) and then broadcasts on ``{prefix}{topic}``. A listener
    thread delivers topics published by other processes; messages carrying
    this bus's own origin id are skipped because they were delivered already.
    """

    def __init__(
        self,
        client: "redis.Redis",
        channel_prefix: str = "ops:changes:",
        poll_timeout: float = 1.0,
    ) -> None:
        super().__init__()
        self._client = client
        self._prefix = channel_prefix
        self._poll_timeout = poll_timeout
        self._origin = uuid.uuid4().hex
        self._stop = threading.Event()
        self._pubsub = client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.psubscribe(f"{channel_prefix}*")
        self._thread = threading.Thread(target=self._listen, name="change-bus-listener", daemon=True)
        self._thread.start()
        logger.info("Redis change bus started", channel_prefix=channel_prefix, origin=self._origin[:8])

    @classmethod
    def from_url(
        cls,
        redis_url: str,
        channel_prefix: str = "ops:changes:",
        poll_timeout: float = 1.0,
        socket_timeout: int = 5,
    ) -> "RedisChangeBus":
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            health_check_interval=30,
        )
        return cls(client, channel_prefix=channel_prefix, poll_timeout=poll_timeout)

    def publish(self, topic: str) -> None:
        self.dispatch(topic)
        message = json.dumps({"topic": topic, "origin": self._origin})
        try:
            self._client.publish(f"{self._prefix}{topic}", message)
        except redis.exceptions.RedisError as e:
            # Other processes fall back to their refresh timers
            logger.warning("Change broadcast failed", topic=topic, error=str(e))

    def handle_message(self, data: str) -> None:
        """Deliver one raw pub/sub payload to local handlers."""
        try:
            message = json.loads(data)
            topic = message["topic"]
            origin = message.get("origin")
        except (TypeError, ValueError, KeyError) as e:
            logger.warning("Malformed change message dropped", error=str(e))
            return

        if origin == self._origin:
            return
        self.dispatch(topic)

    def _listen(self) -> None:
        while not self._stop.is_set():
            try:
                message = self._pubsub.get_message(timeout=self._poll_timeout)
            except redis.exceptions.RedisError as e:
                logger.warning("Change bus listener error", error=str(e))
                self._stop.wait(self._poll_timeout)
                continue
            if message and message.get("type") == "pmessage":
                self.handle_message(message["data"])

    def close(self) -> None:
        self._stop.set()
        self._thread.join(timeout=self._poll_timeout + 1)
        try:
            self._pubsub.close()
            self._client.close()
        except redis.exceptions.RedisError as e:
            logger.warning("Change bus shutdown error", error=str(e))
        logger.info("Redis change bus stopped")
