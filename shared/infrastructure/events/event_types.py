"""
Change topic constants.

Topics carry no payload; subscribers re-read the session store.
"""

# =============================================================================
# Domain change topics
# =============================================================================

CASH_SESSIONS_CHANGED = "cashSessionsChanged"
ORDERS_CHANGED = "ordersChanged"
WAITLIST_CHANGED = "waitlistChanged"
RESTAURANTS_CHANGED = "restaurantsChanged"

ALL_TOPICS = [
    CASH_SESSIONS_CHANGED,
    ORDERS_CHANGED,
    WAITLIST_CHANGED,
    RESTAURANTS_CHANGED,
]

# =============================================================================
# Topics each workstation reloads on
# =============================================================================

WORKSTATION_TOPICS: dict[str, list[str]] = {
    "kitchen": [ORDERS_CHANGED],
    "cashier": [CASH_SESSIONS_CHANGED, ORDERS_CHANGED],
    "service": [RESTAURANTS_CHANGED, ORDERS_CHANGED],
    "reception": [WAITLIST_CHANGED, RESTAURANTS_CHANGED],
}
