"""
Centralized exceptions for consistent error handling.

Every error carries an HTTP status code, a user-facing message (``detail``)
and a stable machine-readable ``code``. Authentication errors also carry the
page the operator must be sent to (``redirect_to``).

Usage:
    from shared.utils.exceptions import AlreadyOpenError, NotFoundError

    raise AlreadyOpenError(restaurant_id)
    raise NotFoundError("Restaurante", restaurant_id)
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    code: str = "APP_ERROR"

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        redirect_to: str | None = None,
        **log_context: Any,
    ):
        self.redirect_to = redirect_to

        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, code=self.code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def to_dict(self) -> dict[str, Any]:
        """Response body for the HTTP layer and the CLI."""
        body: dict[str, Any] = {"detail": self.detail, "code": self.code}
        if self.redirect_to:
            body["redirect_to"] = self.redirect_to
        return body


# =============================================================================
# 401/403 Authentication and scope errors
# =============================================================================


class InvalidLoginError(AppException):
    """No employee with this login code on the restaurant roster."""

    code = "INVALID_LOGIN"

    def __init__(self, restaurant_id: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login inválido: funcionário não encontrado.",
            restaurant_id=restaurant_id,
            **log_context,
        )


class WrongPasswordError(AppException):
    """Employee found but the PIN does not match."""

    code = "WRONG_PASSWORD"

    def __init__(self, restaurant_id: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Senha incorreta: a senha inserida está incorreta.",
            restaurant_id=restaurant_id,
            **log_context,
        )


class SessionRequiredError(AppException):
    """Protected page opened without an employee session."""

    code = "SESSION_REQUIRED"

    def __init__(self, redirect_to: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sessão de funcionário necessária.",
            redirect_to=redirect_to,
            **log_context,
        )


class SessionScopeMismatchError(AppException):
    """
    Employee session minted for another restaurant or role.
    The session has already been purged when this is raised.
    """

    code = "SESSION_SCOPE_MISMATCH"

    def __init__(
        self,
        reason: str,
        redirect_to: str,
        required_role: str | None = None,
        **log_context: Any,
    ):
        if reason == "restaurant":
            detail = "Sessão inválida: você está logado em outro restaurante."
        else:
            detail = f"Acesso negado: você não tem permissão de '{required_role}'."

        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            redirect_to=redirect_to,
            reason=reason,
            required_role=required_role,
            **log_context,
        )
        self.reason = reason


class UnmappedRoleError(AppException):
    """Employee role has no workstation surface."""

    code = "UNMAPPED_ROLE"

    def __init__(self, role: str, **log_context: Any):
        super().__init__(
            status_code=422,
            detail=f"Função desconhecida: a função '{role}' não tem uma tela de trabalho definida.",
            role=role,
            **log_context,
        )
        self.role = role


class PlanRequiredError(AppException):
    """Restaurant plan does not include the requested workstation."""

    code = "PLAN_REQUIRED"

    def __init__(self, workstation: str, required_plan: str, redirect_to: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Acesso negado: este modo requer o Plano {required_plan}.",
            redirect_to=redirect_to,
            workstation=workstation,
            required_plan=required_plan,
            **log_context,
        )


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """Input validation error (400)."""

    code = "VALIDATION_ERROR"

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            **log_context,
        )


class InvalidAmountError(ValidationError):
    """Monetary amount is not a positive value."""

    code = "INVALID_AMOUNT"

    def __init__(self, amount: Any, **log_context: Any):
        super().__init__(
            f"Valor inválido ({amount}): informe um valor monetário positivo.",
            amount=str(amount),
            **log_context,
        )


class InvalidTransitionError(ValidationError):
    """Invalid status transition."""

    code = "INVALID_TRANSITION"

    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        detail = f"Transição inválida de '{from_status}' para '{to_status}' em {entity}"
        super().__init__(detail, entity=entity, from_status=from_status, to_status=to_status, **log_context)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Restaurante", "trattoria-del-ponte")
    """

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} com ID {entity_id} não encontrado"
        else:
            detail = f"{entity} não encontrado"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class RestaurantNotFoundError(NotFoundError):
    def __init__(self, restaurant_id: str | None = None, **log_context: Any):
        super().__init__("Restaurante", restaurant_id, **log_context)


class CashSessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str | None = None, **log_context: Any):
        super().__init__("Sessão de caixa", session_id, **log_context)


class ReinforcementNotFoundError(NotFoundError):
    def __init__(self, reinforcement_id: str | None = None, **log_context: Any):
        super().__init__("Reforço", reinforcement_id, **log_context)


class PayoutNotFoundError(NotFoundError):
    def __init__(self, payout_id: str | None = None, **log_context: Any):
        super().__init__("Sangria", payout_id, **log_context)


class WaitlistItemNotFoundError(NotFoundError):
    def __init__(self, item_id: str | None = None, **log_context: Any):
        super().__init__("Item da lista de espera", item_id, **log_context)


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str | None = None, **log_context: Any):
        super().__init__("Pedido", order_id, **log_context)


class OrderItemNotFoundError(NotFoundError):
    def __init__(self, line_id: str | None = None, **log_context: Any):
        super().__init__("Item do pedido", line_id, **log_context)


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """Resource conflict error (409)."""

    code = "CONFLICT"

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            **log_context,
        )


class AlreadyOpenError(ConflictError):
    """The restaurant already has an open cash session."""

    code = "ALREADY_OPEN"

    def __init__(self, restaurant_id: str, session_id: str | None = None, **log_context: Any):
        super().__init__(
            "Não é possível abrir o caixa: já existe uma sessão aberta.",
            restaurant_id=restaurant_id,
            session_id=session_id,
            **log_context,
        )


class SessionNotOpenError(ConflictError):
    """The target cash session is not open (closed, or no session at all)."""

    code = "SESSION_NOT_OPEN"

    def __init__(self, session_id: str | None = None, **log_context: Any):
        if session_id:
            detail = f"A sessão de caixa {session_id} não está aberta."
        else:
            detail = "Nenhuma sessão de caixa aberta."
        super().__init__(detail, session_id=session_id, **log_context)


class OrderFinalizedError(ConflictError):
    """The order was already paid and can no longer change."""

    code = "ORDER_FINALIZED"

    def __init__(self, order_id: str, **log_context: Any):
        super().__init__(f"O pedido {order_id} já foi finalizado.", order_id=order_id, **log_context)


# =============================================================================
# 507 Storage Errors
# =============================================================================


class StorageQuotaError(AppException):
    """The session store refused the write (quota exceeded)."""

    code = "STORAGE_QUOTA"

    def __init__(self, key: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_507_INSUFFICIENT_STORAGE,
            detail=(
                "Erro: o armazenamento está cheio. Não foi possível salvar os dados; "
                "as informações anteriores foram mantidas."
            ),
            log_level="error",
            key=key,
            **log_context,
        )
