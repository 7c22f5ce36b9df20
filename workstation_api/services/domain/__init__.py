"""
Domain Services - business rules of the workflow coordinator.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    SessionStore (JSON documents + change bus)

Usage:
    from workstation_api.services.domain import CashRegisterService

    # In router
    service = CashRegisterService(store)
    session = service.get_active_session(restaurant_id)
"""

from .cash_register_service import CashRegisterService, MillisecondIds, to_money, utcnow
from .employee_auth import EmployeeAuthGuard, GuardState, RejectionReason
from .order_service import OrderService, validate_item_transition
from .refresher import WorkstationRefresher
from .reports import (
    build_session_report,
    format_brl,
    render_payout_receipt,
    render_reinforcement_receipt,
)
from .roster import DEMO_RESTAURANTS, RestaurantRoster, load_seed
from .waitlist_service import WaitlistService, validate_waitlist_transition
from .workstation_dispatch import (
    WorkstationRoute,
    check_plan,
    dispatch,
    resolve_workstation,
    workstation_path,
)

__all__ = [
    # Cash register
    "CashRegisterService",
    "MillisecondIds",
    "to_money",
    "utcnow",
    # Orders
    "OrderService",
    "validate_item_transition",
    # Employee authentication
    "EmployeeAuthGuard",
    "GuardState",
    "RejectionReason",
    # Workstations
    "WorkstationRefresher",
    "WorkstationRoute",
    "check_plan",
    "dispatch",
    "resolve_workstation",
    "workstation_path",
    # Reports and receipts
    "build_session_report",
    "format_brl",
    "render_payout_receipt",
    "render_reinforcement_receipt",
    # Roster
    "DEMO_RESTAURANTS",
    "RestaurantRoster",
    "load_seed",
    # Waitlist
    "WaitlistService",
    "validate_waitlist_transition",
]
