"""
Shared Pydantic schemas used across the application.

Domain records are stored in the session store as JSON produced by
``model_dump(mode="json")``; monetary values are ``Decimal`` and travel as
strings so they survive the round trip exactly.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Common Types
# =============================================================================

Plan = Literal["Insights", "Digital", "Completo"]
CashStatus = Literal["open", "closed"]
WaitlistItemStatus = Literal["Aguardando", "Chamado", "Cancelado"]
PaymentMethod = Literal["Dinheiro", "Crédito", "Débito", "Pix"]
OrderStatusValue = Literal["Aberto", "Aguardando Pagamento", "Finalizado"]
OrderItemStatusValue = Literal["Lançamento", "Pendente", "Pronto", "Entregue", "Cancelado"]
Department = Literal["Cozinha", "Copa"]


def _zero_by_method() -> dict[str, Decimal]:
    return {"Dinheiro": Decimal("0"), "Crédito": Decimal("0"), "Débito": Decimal("0"), "Pix": Decimal("0")}


# =============================================================================
# Restaurant Roster
# =============================================================================


class Employee(BaseModel):
    """
    Roster entry. The role is free text on the roster; only the roles listed in
    ``shared.config.constants.Roles`` have a workstation.
    """

    id: str | None = None
    login: str
    password: str  # numeric PIN, or a bcrypt hash of it
    name: str
    role: str


class Restaurant(BaseModel):
    """Restaurant as supplied by the roster. The coordinator only reads it."""

    id: str
    name: str
    plan: Plan | None = None
    employees: list[Employee] = Field(default_factory=list)


# =============================================================================
# Employee Session
# =============================================================================


class EmployeeSession(BaseModel):
    """Who is logged in on one workstation scope, and for which restaurant."""

    employee: Employee
    restaurant_id: str


class EmployeeOutput(BaseModel):
    """Employee as exposed to workstation clients (never includes the PIN)."""

    id: str | None = None
    login: str
    name: str
    role: str

    @classmethod
    def from_employee(cls, employee: Employee) -> "EmployeeOutput":
        return cls(id=employee.id, login=employee.login, name=employee.name, role=employee.role)


# =============================================================================
# Cash Register
# =============================================================================


class Reinforcement(BaseModel):
    """Cash added to an open register (suprimento). Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    cash_session_id: str
    amount: Decimal
    reason: str
    added_by: str
    timestamp: datetime


class Payout(BaseModel):
    """Cash withdrawn from an open register (sangria). Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    cash_session_id: str
    amount: Decimal
    recipient: str
    reason: str
    timestamp: datetime


class Cancellations(BaseModel):
    count: int = 0


class SalesSummary(BaseModel):
    """Finalized sales registered on a session, per payment method."""

    total: Decimal = Decimal("0")
    by_method: dict[str, Decimal] = Field(default_factory=_zero_by_method)
    # Orders already counted, so a sale is never added twice
    order_ids: list[str] = Field(default_factory=list)


class CashSession(BaseModel):
    """One register shift, from open to close."""

    id: str
    restaurant_id: str
    status: CashStatus = "open"
    opened_by: str
    opened_at: datetime
    opening_balance: Decimal
    reinforcements: list[Reinforcement] = Field(default_factory=list)
    payouts: list[Payout] = Field(default_factory=list)
    cancellations: Cancellations = Field(default_factory=Cancellations)
    sales: SalesSummary = Field(default_factory=SalesSummary)
    closed_by: str | None = None
    closed_at: datetime | None = None
    closing_balance: Decimal | None = None

    @property
    def is_open(self) -> bool:
        return self.status == "open"


class SessionReport(BaseModel):
    """Display-layer reconciliation of a cash session."""

    session_id: str
    restaurant_id: str
    status: CashStatus
    opened_by: str
    opened_at: datetime
    closed_by: str | None = None
    closed_at: datetime | None = None
    opening_balance: Decimal
    cash_sales: Decimal
    total_sales: Decimal
    sales_by_method: dict[str, Decimal]
    reinforcements_total: Decimal
    payouts_total: Decimal
    expected_cash: Decimal
    closing_balance: Decimal | None = None
    difference: Decimal | None = None
    cancelled_items: int


# =============================================================================
# Waitlist
# =============================================================================


class WaitlistItem(BaseModel):
    id: str
    restaurant_id: str
    name: str
    phone: str
    party_size: int
    created_at: datetime
    status: WaitlistItemStatus = "Aguardando"


# =============================================================================
# Orders
# =============================================================================


class OrderItem(BaseModel):
    """
    One line of an order. ``line_id`` identifies the line; the same menu item
    ordered twice is two lines.
    """

    line_id: str
    item_id: str
    name: str = ""
    quantity: int = Field(ge=1)
    unit_price: Decimal
    department: Department = "Cozinha"
    print_group: str | None = None
    status: OrderItemStatusValue = "Pendente"
    created_at: datetime
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == "Cancelado"

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Order(BaseModel):
    """A table's order (comanda), from the first item to payment."""

    id: str
    restaurant_id: str
    table_id: str
    table_number: str
    items: list[OrderItem] = Field(default_factory=list)
    status: OrderStatusValue = "Aberto"
    payment_method: PaymentMethod | None = None
    total: Decimal | None = None
    service_fee_applied: bool = False
    amount_paid: Decimal | None = None
    client_cpf: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def is_finalized(self) -> bool:
        return self.status == "Finalizado"

    @property
    def subtotal(self) -> Decimal:
        """Sum of the lines that were not cancelled."""
        return sum((item.line_total for item in self.items if not item.is_cancelled), Decimal("0"))


class ProductionTicket(BaseModel):
    """An item line as shown on the kitchen display, with its table."""

    order_id: str
    table_number: str
    item: OrderItem


# =============================================================================
# Request / Response Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """Employee login body: numeric login code and PIN."""

    login: str = Field(min_length=1, max_length=32)
    pin: str = Field(min_length=1, max_length=32)


class LoginResponse(BaseModel):
    employee: EmployeeOutput
    restaurant_id: str
    # Signed scope token to send back in the X-Workstation-Scope header (login only)
    scope_token: str | None = None
    workstation: str | None = None
    redirect_to: str | None = None


class LogoutResponse(BaseModel):
    success: bool
    redirect_to: str


class WorkstationOutput(BaseModel):
    workstation: str
    path: str
    refresh_seconds: float
    topics: list[str]


class OpenSessionRequest(BaseModel):
    opening_balance: Decimal
    # Defaults to the logged-in employee's name
    opened_by: str | None = None


class ReinforcementRequest(BaseModel):
    amount: Decimal
    reason: str = Field(min_length=1, max_length=200)
    added_by: str | None = None


class PayoutRequest(BaseModel):
    amount: Decimal
    recipient: str = Field(min_length=1, max_length=120)
    reason: str = Field(min_length=1, max_length=200)


class SaleRequest(BaseModel):
    order_id: str = Field(min_length=1)
    payment_method: PaymentMethod
    amount: Decimal


class CancellationRequest(BaseModel):
    quantity: int = Field(ge=1)


class CloseSessionRequest(BaseModel):
    closing_balance: Decimal
    closed_by: str | None = None


class WaitlistCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    phone: str = Field(min_length=1, max_length=40)
    party_size: int = Field(ge=1, le=50)


class WaitlistStatusUpdate(BaseModel):
    status: WaitlistItemStatus


class ReceiptOutput(BaseModel):
    receipt: str


class OrderItemInput(BaseModel):
    """Item line sent by the service workstation. Lines without ``line_id`` are new."""

    line_id: str | None = None
    item_id: str = Field(min_length=1, max_length=64)
    name: str = Field(default="", max_length=120)
    quantity: int = Field(ge=1, le=99)
    unit_price: Decimal
    department: Department = "Cozinha"
    print_group: str | None = Field(default=None, max_length=40)
    status: OrderItemStatusValue | None = None


class OrderUpsertRequest(BaseModel):
    # Omitted: the table's active order, or a new one
    id: str | None = None
    table_id: str = Field(min_length=1, max_length=64)
    table_number: str = Field(min_length=1, max_length=16)
    items: list[OrderItemInput] = Field(default_factory=list)
    client_cpf: str | None = Field(default=None, max_length=14)


class OrderStatusUpdate(BaseModel):
    status: OrderStatusValue


class OrderLineRef(BaseModel):
    order_id: str = Field(min_length=1)
    line_id: str = Field(min_length=1)


class ItemStatusUpdate(BaseModel):
    lines: list[OrderLineRef] = Field(min_length=1)
    status: OrderItemStatusValue


class CancelItemRequest(BaseModel):
    # Defaults to the logged-in employee's name
    cancelled_by: str | None = Field(default=None, max_length=120)


class FinalizeOrderRequest(BaseModel):
    payment_method: PaymentMethod
    include_service_fee: bool = False
    amount_paid: Decimal | None = None
    client_cpf: str | None = Field(default=None, max_length=14)


class FinalizeOrderResponse(BaseModel):
    order: Order
    # False when no cash session was open, or the order was already counted
    sale_recorded: bool


class CancelItemResponse(BaseModel):
    order: Order
    cancelled: bool
