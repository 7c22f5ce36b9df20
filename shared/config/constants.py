"""
Centralized constants for the workflow coordinator.
Avoids magic strings for roles, statuses, plans and storage keys.

Usage:
    from shared.config.constants import Roles, CashSessionStatus, StorageKeys

    if employee.role == Roles.CASHIER:
        ...

    key = StorageKeys.cash_sessions(restaurant_id)
"""

from typing import Final


# =============================================================================
# Employee Roles
# =============================================================================


class Roles:
    """Employee role constants (as stored in the restaurant roster)."""

    CASHIER: Final[str] = "Caixa"
    KITCHEN: Final[str] = "Cozinha"
    RECEPTION: Final[str] = "Recepção"
    WAITER: Final[str] = "Garçom"

    ALL: Final[list[str]] = [CASHIER, KITCHEN, RECEPTION, WAITER]


# =============================================================================
# Workstations
# =============================================================================


class Workstations:
    """Workstation surface identifiers."""

    CASHIER: Final[str] = "cashier"
    KITCHEN: Final[str] = "kitchen"
    RECEPTION: Final[str] = "reception"
    SERVICE: Final[str] = "service"

    ALL: Final[list[str]] = [CASHIER, KITCHEN, RECEPTION, SERVICE]


# Each role selects exactly one workstation; roles missing here have no surface
WORKSTATION_BY_ROLE: Final[dict[str, str]] = {
    Roles.CASHIER: Workstations.CASHIER,
    Roles.KITCHEN: Workstations.KITCHEN,
    Roles.RECEPTION: Workstations.RECEPTION,
    Roles.WAITER: Workstations.SERVICE,
}

# Route of each workstation page, formatted with the restaurant id
WORKSTATION_PATHS: Final[dict[str, str]] = {
    Workstations.CASHIER: "/cashier/{restaurant_id}",
    Workstations.KITCHEN: "/kds/{restaurant_id}",
    Workstations.RECEPTION: "/reception/{restaurant_id}",
    Workstations.SERVICE: "/service/{restaurant_id}",
}


# =============================================================================
# Service plans
# =============================================================================


class Plans:
    """Restaurant service tiers."""

    INSIGHTS: Final[str] = "Insights"
    DIGITAL: Final[str] = "Digital"
    COMPLETE: Final[str] = "Completo"

    ALL: Final[list[str]] = [INSIGHTS, DIGITAL, COMPLETE]


# Workstations that require a specific plan; reception is available on every plan
WORKSTATION_REQUIRED_PLAN: Final[dict[str, str]] = {
    Workstations.CASHIER: Plans.COMPLETE,
    Workstations.KITCHEN: Plans.COMPLETE,
    Workstations.SERVICE: Plans.COMPLETE,
}


# =============================================================================
# Entity Status Constants
# =============================================================================


class CashSessionStatus:
    """Cash register session status constants."""

    OPEN: Final[str] = "open"
    CLOSED: Final[str] = "closed"


class WaitlistStatus:
    """Waitlist entry status constants."""

    WAITING: Final[str] = "Aguardando"
    CALLED: Final[str] = "Chamado"
    CANCELED: Final[str] = "Cancelado"

    ALL: Final[list[str]] = [WAITING, CALLED, CANCELED]


class OrderStatus:
    """Order (comanda) status constants."""

    OPEN: Final[str] = "Aberto"
    AWAITING_PAYMENT: Final[str] = "Aguardando Pagamento"
    FINALIZED: Final[str] = "Finalizado"

    ALL: Final[list[str]] = [OPEN, AWAITING_PAYMENT, FINALIZED]


class OrderItemStatus:
    """Status of one item line, as bumped by the kitchen display."""

    DRAFT: Final[str] = "Lançamento"
    PENDING: Final[str] = "Pendente"
    READY: Final[str] = "Pronto"
    DELIVERED: Final[str] = "Entregue"
    CANCELED: Final[str] = "Cancelado"

    ALL: Final[list[str]] = [DRAFT, PENDING, READY, DELIVERED, CANCELED]


class Departments:
    """Production areas an item line is routed to."""

    KITCHEN: Final[str] = "Cozinha"
    BAR: Final[str] = "Copa"

    ALL: Final[list[str]] = [KITCHEN, BAR]


class PaymentMethods:
    """Payment methods tracked per cash session."""

    CASH: Final[str] = "Dinheiro"
    CREDIT: Final[str] = "Crédito"
    DEBIT: Final[str] = "Débito"
    PIX: Final[str] = "Pix"

    ALL: Final[list[str]] = [CASH, CREDIT, DEBIT, PIX]


# =============================================================================
# Status Transitions
# =============================================================================

# Valid waitlist transitions (from -> [allowed to states])
WAITLIST_TRANSITIONS: Final[dict[str, list[str]]] = {
    WaitlistStatus.WAITING: [WaitlistStatus.CALLED, WaitlistStatus.CANCELED],
    WaitlistStatus.CALLED: [WaitlistStatus.CANCELED],
    WaitlistStatus.CANCELED: [WaitlistStatus.CANCELED],
}

# Order status changes made by the service workstation; Finalizado is only
# reached through payment
ORDER_TRANSITIONS: Final[dict[str, list[str]]] = {
    OrderStatus.OPEN: [OrderStatus.AWAITING_PAYMENT],
    OrderStatus.AWAITING_PAYMENT: [OrderStatus.OPEN],
    OrderStatus.FINALIZED: [],
}

# Item line changes made by the kitchen display; Cancelado is only reached
# through an item cancellation
ORDER_ITEM_TRANSITIONS: Final[dict[str, list[str]]] = {
    OrderItemStatus.DRAFT: [OrderItemStatus.PENDING],
    OrderItemStatus.PENDING: [OrderItemStatus.READY],
    OrderItemStatus.READY: [OrderItemStatus.DELIVERED, OrderItemStatus.PENDING],
    OrderItemStatus.DELIVERED: [],
    OrderItemStatus.CANCELED: [],
}


# =============================================================================
# Storage keys
# =============================================================================


class StorageKeys:
    """Session store keys. Every tenant-owned key is namespaced by restaurant id."""

    RESTAURANTS: Final[str] = "restaurants"
    CASH_SESSIONS_PREFIX: Final[str] = "cash-sessions-"
    WAITLIST_PREFIX: Final[str] = "waitlist-"
    ORDERS_PREFIX: Final[str] = "orders-"
    EMPLOYEE_SESSION_PREFIX: Final[str] = "employee-session-"

    @staticmethod
    def cash_sessions(restaurant_id: str) -> str:
        return f"{StorageKeys.CASH_SESSIONS_PREFIX}{restaurant_id}"

    @staticmethod
    def waitlist(restaurant_id: str) -> str:
        return f"{StorageKeys.WAITLIST_PREFIX}{restaurant_id}"

    @staticmethod
    def orders(restaurant_id: str) -> str:
        return f"{StorageKeys.ORDERS_PREFIX}{restaurant_id}"

    @staticmethod
    def employee_session(scope_id: str) -> str:
        return f"{StorageKeys.EMPLOYEE_SESSION_PREFIX}{scope_id}"


# =============================================================================
# Navigation
# =============================================================================


class Routes:
    """Pages the guard and dispatcher redirect to."""

    LANDING: Final[str] = "/"
    EMPLOYEE_LOGIN: Final[str] = "/employee-login/{restaurant_id}"
    ADMIN_DASHBOARD: Final[str] = "/admin/dashboard/{restaurant_id}"

    @staticmethod
    def login_for(restaurant_id: str | None) -> str:
        """Login page of the restaurant, or the landing page without a restaurant scope."""
        if restaurant_id:
            return Routes.EMPLOYEE_LOGIN.format(restaurant_id=restaurant_id)
        return Routes.LANDING


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    MAX_AMOUNT: Final[str] = "1000000.00"
    MAX_REASON_LENGTH: Final[int] = 200
    MAX_NAME_LENGTH: Final[int] = 120
    MIN_PARTY_SIZE: Final[int] = 1
    MAX_PARTY_SIZE: Final[int] = 50
    MAX_ITEM_QUANTITY: Final[int] = 99
    SERVICE_FEE_RATE: Final[str] = "0.10"
