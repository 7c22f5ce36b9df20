"""
Workstation dispatch router.
Tells an authenticated employee which workstation to open.
"""

from fastapi import APIRouter, Depends

from shared.config.settings import settings
from shared.utils.schemas import WorkstationOutput
from workstation_api.routers._common import get_guard, get_roster
from workstation_api.services.domain import EmployeeAuthGuard, RestaurantRoster, dispatch

router = APIRouter(prefix="/api/restaurants/{restaurant_id}", tags=["workstation"])


@router.get("/workstation", response_model=WorkstationOutput)
def get_workstation(
    restaurant_id: str,
    guard: EmployeeAuthGuard = Depends(get_guard),
    roster: RestaurantRoster = Depends(get_roster),
) -> WorkstationOutput:
    """
    Route the logged-in employee to their workstation.

    422 when the role has no workstation; 403 with ``redirect_to`` pointing to
    the admin dashboard when the plan does not include it.
    """
    restaurant = roster.get(restaurant_id)
    employee = guard.require(restaurant_id)
    route = dispatch(employee, restaurant, settings)
    return WorkstationOutput(
        workstation=route.workstation,
        path=route.path,
        refresh_seconds=route.refresh_seconds,
        topics=route.topics,
    )
