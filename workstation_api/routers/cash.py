"""
Cash register router.
Open, reinforce, withdraw, record sales and close the restaurant's register.

All endpoints require a cashier session of the restaurant and the plan that
includes the cashier workstation.
"""

from fastapi import APIRouter, Depends, status

from shared.utils.exceptions import CashSessionNotFoundError
from shared.utils.schemas import (
    CancellationRequest,
    CashSession,
    CloseSessionRequest,
    Employee,
    OpenSessionRequest,
    Payout,
    PayoutRequest,
    Reinforcement,
    ReinforcementRequest,
    SaleRequest,
    SessionReport,
)
from workstation_api.routers._common import get_cash_service, require_cashier
from workstation_api.services.domain import CashRegisterService, build_session_report

router = APIRouter(prefix="/api/restaurants/{restaurant_id}/cash", tags=["cash"])


def _session_of(service: CashRegisterService, restaurant_id: str, session_id: str) -> CashSession:
    """Session by id, only if it belongs to this restaurant."""
    session = service.get_session_by_id(session_id)
    if session is None or session.restaurant_id != restaurant_id:
        raise CashSessionNotFoundError(session_id, restaurant_id=restaurant_id)
    return session


@router.get("/active", response_model=CashSession | None)
def get_active_session(
    restaurant_id: str,
    employee: Employee = Depends(require_cashier),
    service: CashRegisterService = Depends(get_cash_service),
) -> CashSession | None:
    return service.get_active_session(restaurant_id)


@router.get("/sessions", response_model=list[CashSession])
def list_sessions(
    restaurant_id: str,
    employee: Employee = Depends(require_cashier),
    service: CashRegisterService = Depends(get_cash_service),
) -> list[CashSession]:
    return service.list_sessions(restaurant_id)


@router.post("/sessions", response_model=CashSession, status_code=status.HTTP_201_CREATED)
def open_session(
    restaurant_id: str,
    body: OpenSessionRequest,
    employee: Employee = Depends(require_cashier),
    service: CashRegisterService = Depends(get_cash_service),
) -> CashSession:
    """Open the register. 409 when a session is already open."""
    return service.open_session(restaurant_id, body.opened_by or employee.name, body.opening_balance)


@router.post(
    "/sessions/{session_id}/reinforcements",
    response_model=Reinforcement,
    status_code=status.HTTP_201_CREATED,
)
def add_reinforcement(
    restaurant_id: str,
    session_id: str,
    body: ReinforcementRequest,
    employee: Employee = Depends(require_cashier),
    service: CashRegisterService = Depends(get_cash_service),
) -> Reinforcement:
    _session_of(service, restaurant_id, session_id)
    return service.add_reinforcement(session_id, body.amount, body.reason, body.added_by or employee.name)


@router.post("/payouts", response_model=Payout, status_code=status.HTTP_201_CREATED)
def add_payout(
    restaurant_id: str,
    body: PayoutRequest,
    employee: Employee = Depends(require_cashier),
    service: CashRegisterService = Depends(get_cash_service),
) -> Payout:
    return service.add_payout(restaurant_id, body.amount, body.recipient, body.reason)


@router.post("/sales")
def record_sale(
    restaurant_id: str,
    body: SaleRequest,
    employee: Employee = Depends(require_cashier),
    service: CashRegisterService = Depends(get_cash_service),
) -> dict:
    """``recorded`` is false when no session is open or the order was already counted."""
    recorded = service.record_sale(restaurant_id, body.order_id, body.payment_method, body.amount)
    return {"recorded": recorded}


@router.post("/cancellations")
def record_cancellation(
    restaurant_id: str,
    body: CancellationRequest,
    employee: Employee = Depends(require_cashier),
    service: CashRegisterService = Depends(get_cash_service),
) -> dict:
    return {"recorded": service.record_cancellation(restaurant_id, body.quantity)}


@router.post("/sessions/{session_id}/close", response_model=CashSession)
def close_session(
    restaurant_id: str,
    session_id: str,
    body: CloseSessionRequest,
    employee: Employee = Depends(require_cashier),
    service: CashRegisterService = Depends(get_cash_service),
) -> CashSession:
    _session_of(service, restaurant_id, session_id)
    return service.close_session(session_id, body.closing_balance, body.closed_by or employee.name)


@router.get("/sessions/{session_id}/report", response_model=SessionReport)
def get_session_report(
    restaurant_id: str,
    session_id: str,
    employee: Employee = Depends(require_cashier),
    service: CashRegisterService = Depends(get_cash_service),
) -> SessionReport:
    return build_session_report(_session_of(service, restaurant_id, session_id))
