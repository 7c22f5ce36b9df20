"""
Change notification: bus implementations and topic names.
"""

from .bus import ChangeBus, LocalChangeBus, RedisChangeBus, Handler, Unsubscribe
from .event_types import (
    CASH_SESSIONS_CHANGED,
    ORDERS_CHANGED,
    WAITLIST_CHANGED,
    RESTAURANTS_CHANGED,
    ALL_TOPICS,
    WORKSTATION_TOPICS,
)

__all__ = [
    "ChangeBus",
    "LocalChangeBus",
    "RedisChangeBus",
    "Handler",
    "Unsubscribe",
    "CASH_SESSIONS_CHANGED",
    "ORDERS_CHANGED",
    "WAITLIST_CHANGED",
    "RESTAURANTS_CHANGED",
    "ALL_TOPICS",
    "WORKSTATION_TOPICS",
]
