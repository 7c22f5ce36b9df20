"""
Common dependencies shared across routers.
"""

from .dependencies import (
    SCOPE_HEADER,
    get_cash_service,
    get_guard,
    get_order_service,
    get_roster,
    get_scope,
    get_scope_token,
    get_store,
    get_waitlist_service,
    require_cashier,
    require_employee,
    require_kitchen,
    require_reception,
    require_waiter,
    require_workstation,
)

__all__ = [
    "SCOPE_HEADER",
    "get_cash_service",
    "get_guard",
    "get_order_service",
    "get_roster",
    "get_scope",
    "get_scope_token",
    "get_store",
    "get_waitlist_service",
    "require_cashier",
    "require_employee",
    "require_kitchen",
    "require_reception",
    "require_waiter",
    "require_workstation",
]
