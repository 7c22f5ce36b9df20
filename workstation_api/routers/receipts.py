"""
Receipt router.
Printable receipts for reinforcements and payouts of the restaurant's register.
"""

from fastapi import APIRouter, Depends

from shared.utils.exceptions import PayoutNotFoundError, ReinforcementNotFoundError
from shared.utils.schemas import Employee, ReceiptOutput
from workstation_api.routers._common import get_cash_service, get_roster, require_employee
from workstation_api.services.domain import (
    CashRegisterService,
    RestaurantRoster,
    render_payout_receipt,
    render_reinforcement_receipt,
)

router = APIRouter(prefix="/api/restaurants/{restaurant_id}/receipts", tags=["receipts"])


def _belongs_to(service: CashRegisterService, cash_session_id: str, restaurant_id: str) -> bool:
    session = service.get_session_by_id(cash_session_id)
    return session is not None and session.restaurant_id == restaurant_id


@router.get("/reinforcements/{reinforcement_id}", response_model=ReceiptOutput)
def reinforcement_receipt(
    restaurant_id: str,
    reinforcement_id: str,
    employee: Employee = Depends(require_employee),
    service: CashRegisterService = Depends(get_cash_service),
    roster: RestaurantRoster = Depends(get_roster),
) -> ReceiptOutput:
    restaurant = roster.get(restaurant_id)
    reinforcement = service.get_reinforcement_by_id(reinforcement_id)
    if reinforcement is None or not _belongs_to(service, reinforcement.cash_session_id, restaurant_id):
        raise ReinforcementNotFoundError(reinforcement_id, restaurant_id=restaurant_id)
    return ReceiptOutput(receipt=render_reinforcement_receipt(reinforcement, restaurant))


@router.get("/payouts/{payout_id}", response_model=ReceiptOutput)
def payout_receipt(
    restaurant_id: str,
    payout_id: str,
    employee: Employee = Depends(require_employee),
    service: CashRegisterService = Depends(get_cash_service),
    roster: RestaurantRoster = Depends(get_roster),
) -> ReceiptOutput:
    restaurant = roster.get(restaurant_id)
    payout = service.get_payout_by_id(payout_id)
    if payout is None or not _belongs_to(service, payout.cash_session_id, restaurant_id):
        raise PayoutNotFoundError(payout_id, restaurant_id=restaurant_id)
    return ReceiptOutput(receipt=render_payout_receipt(payout, restaurant))
