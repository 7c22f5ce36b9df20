"""
Utilities: exceptions and schemas.
"""

from shared.utils.exceptions import (
    AppException,
    InvalidLoginError,
    WrongPasswordError,
    SessionRequiredError,
    SessionScopeMismatchError,
    UnmappedRoleError,
    PlanRequiredError,
    ValidationError,
    InvalidAmountError,
    InvalidTransitionError,
    NotFoundError,
    RestaurantNotFoundError,
    CashSessionNotFoundError,
    ReinforcementNotFoundError,
    PayoutNotFoundError,
    WaitlistItemNotFoundError,
    OrderNotFoundError,
    OrderItemNotFoundError,
    ConflictError,
    AlreadyOpenError,
    SessionNotOpenError,
    OrderFinalizedError,
    StorageQuotaError,
)

__all__ = [
    "AppException",
    "InvalidLoginError",
    "WrongPasswordError",
    "SessionRequiredError",
    "SessionScopeMismatchError",
    "UnmappedRoleError",
    "PlanRequiredError",
    "ValidationError",
    "InvalidAmountError",
    "InvalidTransitionError",
    "NotFoundError",
    "RestaurantNotFoundError",
    "CashSessionNotFoundError",
    "ReinforcementNotFoundError",
    "PayoutNotFoundError",
    "WaitlistItemNotFoundError",
    "OrderNotFoundError",
    "OrderItemNotFoundError",
    "ConflictError",
    "AlreadyOpenError",
    "SessionNotOpenError",
    "OrderFinalizedError",
    "StorageQuotaError",
]
