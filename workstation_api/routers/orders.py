"""
Orders router.
Table orders written by the service workstation and paid at the cashier.

Reading orders is open to the service, cashier and kitchen workstations;
each write is limited to the workstation that performs it.
"""

from fastapi import APIRouter, Depends

from shared.config.constants import Workstations
from shared.utils.schemas import (
    CancelItemRequest,
    CancelItemResponse,
    Employee,
    FinalizeOrderRequest,
    FinalizeOrderResponse,
    Order,
    OrderStatusUpdate,
    OrderUpsertRequest,
)
from workstation_api.routers._common import (
    get_order_service,
    require_cashier,
    require_waiter,
    require_workstation,
)
from workstation_api.services.domain import OrderService

router = APIRouter(prefix="/api/restaurants/{restaurant_id}/orders", tags=["orders"])

require_order_reader = require_workstation(Workstations.SERVICE, Workstations.CASHIER, Workstations.KITCHEN)
require_item_canceller = require_workstation(Workstations.SERVICE, Workstations.CASHIER)


@router.get("", response_model=list[Order])
def list_active_orders(
    restaurant_id: str,
    employee: Employee = Depends(require_order_reader),
    service: OrderService = Depends(get_order_service),
) -> list[Order]:
    """Orders not yet paid."""
    return service.list_active(restaurant_id)


@router.get("/{order_id}", response_model=Order)
def get_order(
    restaurant_id: str,
    order_id: str,
    employee: Employee = Depends(require_order_reader),
    service: OrderService = Depends(get_order_service),
) -> Order:
    return service.get_order(restaurant_id, order_id)


@router.put("", response_model=Order)
def save_order(
    restaurant_id: str,
    body: OrderUpsertRequest,
    employee: Employee = Depends(require_waiter),
    service: OrderService = Depends(get_order_service),
) -> Order:
    """Create the table's order or replace its lines. Cancelled lines are kept."""
    return service.save_order(
        restaurant_id,
        body.table_id,
        body.table_number,
        body.items,
        order_id=body.id,
        client_cpf=body.client_cpf,
    )


@router.patch("/{order_id}", response_model=Order)
def update_order_status(
    restaurant_id: str,
    order_id: str,
    body: OrderStatusUpdate,
    employee: Employee = Depends(require_waiter),
    service: OrderService = Depends(get_order_service),
) -> Order:
    return service.update_status(restaurant_id, order_id, body.status)


@router.post("/{order_id}/items/{line_id}/cancel", response_model=CancelItemResponse)
def cancel_order_item(
    restaurant_id: str,
    order_id: str,
    line_id: str,
    body: CancelItemRequest | None = None,
    employee: Employee = Depends(require_item_canceller),
    service: OrderService = Depends(get_order_service),
) -> CancelItemResponse:
    cancelled_by = (body.cancelled_by if body else None) or employee.name
    order, cancelled = service.cancel_item(restaurant_id, order_id, line_id, cancelled_by)
    return CancelItemResponse(order=order, cancelled=cancelled)


@router.post("/{order_id}/finalize", response_model=FinalizeOrderResponse)
def finalize_order(
    restaurant_id: str,
    order_id: str,
    body: FinalizeOrderRequest,
    employee: Employee = Depends(require_cashier),
    service: OrderService = Depends(get_order_service),
) -> FinalizeOrderResponse:
    """Close the order as paid and add it to the open cash session."""
    order, sale_recorded = service.finalize(
        restaurant_id,
        order_id,
        body.payment_method,
        include_service_fee=body.include_service_fee,
        amount_paid=body.amount_paid,
        client_cpf=body.client_cpf,
    )
    return FinalizeOrderResponse(order=order, sale_recorded=sale_recorded)
