"""
Employee authentication router.
Handles PIN login, session validation and logout for one workstation scope.
"""

from fastapi import APIRouter, Depends, Query, Request

from shared.config.constants import WORKSTATION_BY_ROLE
from shared.config.logging import api_logger as logger, mask_login
from shared.config.settings import settings
from shared.infrastructure.store import SessionStore
from shared.security.auth import new_scope_id, sign_scope_token, verify_scope_token
from shared.security.rate_limit import limiter
from shared.utils.exceptions import SessionRequiredError
from shared.utils.schemas import EmployeeOutput, LoginRequest, LoginResponse, LogoutResponse
from workstation_api.routers._common import get_guard, get_roster, get_scope_token, get_store
from workstation_api.services.domain import EmployeeAuthGuard, RestaurantRoster, workstation_path

router = APIRouter(prefix="/api/restaurants/{restaurant_id}/auth", tags=["auth"])


def _login_scope(token: str | None, restaurant_id: str) -> str:
    """Scope of a still-valid token (re-login on the same tab), otherwise a new one."""
    if token:
        try:
            return verify_scope_token(token, restaurant_id)["sub"]
        except SessionRequiredError:
            logger.info("Stale scope token replaced at login", restaurant_id=restaurant_id)
    return new_scope_id()


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def login(
    request: Request,
    restaurant_id: str,
    body: LoginRequest,
    token: str | None = Depends(get_scope_token),
    store: SessionStore = Depends(get_store),
    roster: RestaurantRoster = Depends(get_roster),
) -> LoginResponse:
    """
    Log an employee in and issue the signed scope token for their workstation.

    The response names the employee's workstation when the role has one;
    the plan gate is checked when the workstation is opened
    (``GET /workstation``), not here.
    """
    restaurant = roster.get(restaurant_id)
    scope_id = _login_scope(token, restaurant_id)
    employee = EmployeeAuthGuard(store, scope_id).login(body.login, body.pin, restaurant)

    workstation = WORKSTATION_BY_ROLE.get(employee.role)
    if workstation is None:
        logger.warning("Logged-in employee has no workstation", restaurant_id=restaurant_id, login=mask_login(body.login), role=employee.role)

    return LoginResponse(
        employee=EmployeeOutput.from_employee(employee),
        restaurant_id=restaurant_id,
        scope_token=sign_scope_token(scope_id, restaurant_id, employee.role),
        workstation=workstation,
        redirect_to=workstation_path(workstation, restaurant_id) if workstation else None,
    )


@router.get("/session", response_model=LoginResponse)
def current_session(
    restaurant_id: str,
    role: str | None = Query(default=None, description="Role the page requires"),
    guard: EmployeeAuthGuard = Depends(get_guard),
) -> LoginResponse:
    """
    Validate the stored session against this restaurant (and role).
    A session of another restaurant or role is purged.
    """
    employee = guard.require(restaurant_id, role)
    return LoginResponse(employee=EmployeeOutput.from_employee(employee), restaurant_id=restaurant_id)


@router.post("/logout", response_model=LogoutResponse)
def logout(restaurant_id: str, guard: EmployeeAuthGuard = Depends(get_guard)) -> LogoutResponse:
    return LogoutResponse(success=True, redirect_to=guard.logout(restaurant_id))
