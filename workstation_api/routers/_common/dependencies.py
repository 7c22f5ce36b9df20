"""
Request dependencies shared across routers.

Usage:
    from workstation_api.routers._common import get_guard, get_cash_service

    @router.get("/cash/active")
    def active(service: CashRegisterService = Depends(get_cash_service)):
        ...

The session store lives on ``app.state.store`` (one per process). The
workstation scope, the equivalent of one browser tab, travels in the
``X-Workstation-Scope`` header as the signed token returned by login.
"""

from collections.abc import Callable

from fastapi import Depends, Header, Request

from shared.config.constants import Workstations, WORKSTATION_BY_ROLE
from shared.infrastructure.store import SessionStore
from shared.security.auth import verify_scope_token
from shared.utils.schemas import Employee
from workstation_api.services.domain import (
    CashRegisterService,
    EmployeeAuthGuard,
    OrderService,
    RestaurantRoster,
    WaitlistService,
    check_plan,
)

SCOPE_HEADER = "X-Workstation-Scope"

# Role allowed on each workstation's endpoints
ROLE_BY_WORKSTATION: dict[str, str] = {workstation: role for role, workstation in WORKSTATION_BY_ROLE.items()}


def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_scope_token(
    token: str | None = Header(default=None, alias=SCOPE_HEADER, max_length=2048),
) -> str | None:
    return token


def get_scope(restaurant_id: str, token: str | None = Depends(get_scope_token)) -> str:
    """Scope id of a verified scope token. Raises SessionRequiredError otherwise."""
    return verify_scope_token(token, restaurant_id)["sub"]


def get_guard(
    scope_id: str = Depends(get_scope),
    store: SessionStore = Depends(get_store),
) -> EmployeeAuthGuard:
    return EmployeeAuthGuard(store, scope_id)


def get_roster(request: Request, store: SessionStore = Depends(get_store)) -> RestaurantRoster:
    return RestaurantRoster(store, seed=request.app.state.roster_seed)


def get_cash_service(store: SessionStore = Depends(get_store)) -> CashRegisterService:
    return CashRegisterService(store)


def get_waitlist_service(store: SessionStore = Depends(get_store)) -> WaitlistService:
    return WaitlistService(store)


def get_order_service(
    store: SessionStore = Depends(get_store),
    cash_service: CashRegisterService = Depends(get_cash_service),
) -> OrderService:
    return OrderService(store, cash_service=cash_service)


def require_employee(
    restaurant_id: str,
    guard: EmployeeAuthGuard = Depends(get_guard),
    roster: RestaurantRoster = Depends(get_roster),
) -> Employee:
    """Any employee logged in on this restaurant."""
    roster.get(restaurant_id)
    return guard.require(restaurant_id)


def require_workstation(*workstations: str) -> Callable[..., Employee]:
    """
    Dependency factory for workstation endpoints: the session must belong to
    this restaurant and to the role of one of the workstations, and the
    restaurant's plan must include that workstation.
    """
    roles = [ROLE_BY_WORKSTATION[workstation] for workstation in workstations]
    required_role: str | list[str] = roles[0] if len(roles) == 1 else roles

    def dependency(
        restaurant_id: str,
        guard: EmployeeAuthGuard = Depends(get_guard),
        roster: RestaurantRoster = Depends(get_roster),
    ) -> Employee:
        restaurant = roster.get(restaurant_id)
        employee = guard.require(restaurant_id, required_role)
        check_plan(WORKSTATION_BY_ROLE[employee.role], restaurant)
        return employee

    return dependency


require_cashier = require_workstation(Workstations.CASHIER)
require_reception = require_workstation(Workstations.RECEPTION)
require_kitchen = require_workstation(Workstations.KITCHEN)
require_waiter = require_workstation(Workstations.SERVICE)
