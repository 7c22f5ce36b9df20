"""
Role-Gated Workstation Dispatch.

Two independent gates run after authentication:
1. the employee's role selects exactly one workstation (no default surface);
2. the workstation re-checks the restaurant's plan and sends the operator to
   the administrative dashboard when the plan does not include it.
"""

from dataclasses import dataclass

from shared.config.constants import (
    WORKSTATION_BY_ROLE,
    WORKSTATION_PATHS,
    WORKSTATION_REQUIRED_PLAN,
    Routes,
)
from shared.config.logging import get_logger
from shared.config.settings import Settings
from shared.infrastructure.events import WORKSTATION_TOPICS
from shared.utils.exceptions import PlanRequiredError, UnmappedRoleError
from shared.utils.schemas import Employee, Restaurant

logger = get_logger(__name__)


@dataclass(frozen=True)
class WorkstationRoute:
    workstation: str
    path: str
    refresh_seconds: float
    topics: list[str]


def resolve_workstation(role: str) -> str:
    """Workstation of a role. Raises UnmappedRoleError for roles without one."""
    workstation = WORKSTATION_BY_ROLE.get(role)
    if workstation is None:
        raise UnmappedRoleError(role)
    return workstation


def workstation_path(workstation: str, restaurant_id: str) -> str:
    return WORKSTATION_PATHS[workstation].format(restaurant_id=restaurant_id)


def check_plan(workstation: str, restaurant: Restaurant) -> None:
    """
    Raise PlanRequiredError (redirecting to the admin dashboard) when the
    workstation needs a plan the restaurant does not have.
    """
    required_plan = WORKSTATION_REQUIRED_PLAN.get(workstation)
    if required_plan is None or restaurant.plan == required_plan:
        return

    raise PlanRequiredError(
        workstation,
        required_plan,
        Routes.ADMIN_DASHBOARD.format(restaurant_id=restaurant.id),
        restaurant_id=restaurant.id,
        plan=restaurant.plan,
    )


def dispatch(employee: Employee, restaurant: Restaurant, settings: Settings) -> WorkstationRoute:
    """Route an authenticated employee to their workstation, enforcing both gates."""
    workstation = resolve_workstation(employee.role)
    check_plan(workstation, restaurant)

    route = WorkstationRoute(
        workstation=workstation,
        path=workstation_path(workstation, restaurant.id),
        refresh_seconds=settings.refresh_interval_for(workstation),
        topics=list(WORKSTATION_TOPICS[workstation]),
    )
    logger.debug("Workstation dispatched", restaurant_id=restaurant.id, role=employee.role, workstation=workstation)
    return route
