"""
Kitchen display router.
"""

from fastapi import APIRouter, Depends, Query

from shared.utils.schemas import Department, Employee, ItemStatusUpdate, Order, ProductionTicket
from workstation_api.routers._common import get_order_service, require_kitchen
from workstation_api.services.domain import OrderService

router = APIRouter(prefix="/api/restaurants/{restaurant_id}/kitchen", tags=["kitchen"])


@router.get("/queue", response_model=list[ProductionTicket])
def production_queue(
    restaurant_id: str,
    department: Department | None = Query(default=None),
    employee: Employee = Depends(require_kitchen),
    service: OrderService = Depends(get_order_service),
) -> list[ProductionTicket]:
    """Pending and ready lines, oldest first."""
    return service.production_queue(restaurant_id, department)


@router.post("/items/status", response_model=list[Order])
def update_item_status(
    restaurant_id: str,
    body: ItemStatusUpdate,
    employee: Employee = Depends(require_kitchen),
    service: OrderService = Depends(get_order_service),
) -> list[Order]:
    lines = [(line.order_id, line.line_id) for line in body.lines]
    return service.update_item_status(restaurant_id, lines, body.status)
