"""
Reception waitlist router.
"""

from fastapi import APIRouter, Depends, status

from shared.utils.schemas import Employee, WaitlistCreateRequest, WaitlistItem, WaitlistStatusUpdate
from workstation_api.routers._common import get_waitlist_service, require_reception
from workstation_api.services.domain import WaitlistService

router = APIRouter(prefix="/api/restaurants/{restaurant_id}/waitlist", tags=["waitlist"])


@router.get("", response_model=list[WaitlistItem])
def list_waitlist(
    restaurant_id: str,
    employee: Employee = Depends(require_reception),
    service: WaitlistService = Depends(get_waitlist_service),
) -> list[WaitlistItem]:
    return service.list_items(restaurant_id)


@router.post("", response_model=WaitlistItem, status_code=status.HTTP_201_CREATED)
def add_to_waitlist(
    restaurant_id: str,
    body: WaitlistCreateRequest,
    employee: Employee = Depends(require_reception),
    service: WaitlistService = Depends(get_waitlist_service),
) -> WaitlistItem:
    return service.add(restaurant_id, body.name, body.phone, body.party_size)


@router.patch("/{item_id}", response_model=WaitlistItem)
def update_waitlist_status(
    restaurant_id: str,
    item_id: str,
    body: WaitlistStatusUpdate,
    employee: Employee = Depends(require_reception),
    service: WaitlistService = Depends(get_waitlist_service),
) -> WaitlistItem:
    return service.update_status(restaurant_id, item_id, body.status)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_from_waitlist(
    restaurant_id: str,
    item_id: str,
    employee: Employee = Depends(require_reception),
    service: WaitlistService = Depends(get_waitlist_service),
) -> None:
    service.remove(restaurant_id, item_id)
