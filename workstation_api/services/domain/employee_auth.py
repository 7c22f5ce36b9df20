"""
Employee Authentication Guard.

Role-scoped employee login for one workstation scope (one browser tab, one
kiosk, one terminal). The session is stored under the scope's key and is
checked again on every protected page load: a session minted for another
restaurant or another role is purged, never reused.

States:
    UNAUTHENTICATED -> VALIDATING -> AUTHENTICATED
    UNAUTHENTICATED -> VALIDATING -> REJECTED (redirect to the restaurant login page)
"""

from collections.abc import Collection
from enum import Enum

from pydantic import ValidationError as PydanticValidationError

from shared.config.constants import Routes, StorageKeys
from shared.config.logging import get_logger, mask_login, mask_scope
from shared.infrastructure.store import SessionStore
from shared.security.password import verify_pin
from shared.utils.exceptions import (
    InvalidLoginError,
    SessionRequiredError,
    SessionScopeMismatchError,
    StorageQuotaError,
    WrongPasswordError,
)
from shared.utils.schemas import Employee, EmployeeSession, Restaurant

logger = get_logger(__name__)


def _role_allowed(role: str, required: str | Collection[str]) -> bool:
    if isinstance(required, str):
        return role == required
    return role in required


class GuardState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    VALIDATING = "validating"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    NO_SESSION = "no_session"
    RESTAURANT = "restaurant"
    ROLE = "role"


class EmployeeAuthGuard:
    """
    Guard for one workstation scope.

    ``login`` raises on bad credentials. ``validate_session`` never raises; it
    returns the employee or None and leaves the outcome in ``state``,
    ``redirect_to`` and ``rejection``. ``require`` is the raising variant used
    by protected endpoints.
    """

    def __init__(self, store: SessionStore, scope_id: str):
        self._store = store
        self._scope_id = scope_id
        self._key = StorageKeys.employee_session(scope_id)

        self.state = GuardState.UNAUTHENTICATED
        self.employee: Employee | None = None
        self.redirect_to: str | None = None
        self.rejection: RejectionReason | None = None

    @property
    def scope_id(self) -> str:
        return self._scope_id

    def current_session(self) -> EmployeeSession | None:
        """Stored session of this scope. A malformed session is purged and treated as absent."""
        raw = self._store.read(self._key)
        if raw is None:
            return None
        try:
            return EmployeeSession.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning("Malformed employee session purged", scope=mask_scope(self._scope_id), error=str(e))
            self._purge()
            return None

    def login(self, login_code: str, pin: str, restaurant: Restaurant) -> Employee:
        """
        Authenticate an employee against the restaurant roster and persist the
        session for this scope, replacing any previous one.

        Raises InvalidLoginError, WrongPasswordError or StorageQuotaError.
        """
        self.state = GuardState.VALIDATING
        employee = next((e for e in restaurant.employees if e.login == login_code), None)

        if employee is None:
            self.state = GuardState.UNAUTHENTICATED
            raise InvalidLoginError(restaurant.id, login=mask_login(login_code))

        if not verify_pin(pin, employee.password):
            self.state = GuardState.UNAUTHENTICATED
            raise WrongPasswordError(restaurant.id, login=mask_login(login_code))

        session = EmployeeSession(employee=employee, restaurant_id=restaurant.id)
        if not self._store.write(self._key, session.model_dump(mode="json")):
            self.state = GuardState.UNAUTHENTICATED
            raise StorageQuotaError(self._key)

        self.state = GuardState.AUTHENTICATED
        self.employee = employee
        self.redirect_to = None
        self.rejection = None
        logger.info(
            "Employee logged in",
            restaurant_id=restaurant.id,
            login=mask_login(login_code),
            role=employee.role,
            scope=mask_scope(self._scope_id),
        )
        return employee

    def validate_session(
        self,
        restaurant_id: str | None = None,
        required_role: str | Collection[str] | None = None,
    ) -> Employee | None:
        """
        Check the stored session against the page being opened.

        - no session: REJECTED when the page is restaurant-scoped, otherwise
          stays UNAUTHENTICATED
        - session of another restaurant, or another role than required (any
          of them when several are given): the session is purged and the
          guard is REJECTED
        - otherwise AUTHENTICATED
        """
        self.state = GuardState.VALIDATING
        self.employee = None
        self.redirect_to = None
        self.rejection = None

        session = self.current_session()
        if session is None:
            if restaurant_id:
                self._reject(RejectionReason.NO_SESSION, restaurant_id)
            else:
                self.state = GuardState.UNAUTHENTICATED
            return None

        if restaurant_id and session.restaurant_id != restaurant_id:
            self._purge()
            self._reject(RejectionReason.RESTAURANT, restaurant_id)
            logger.warning(
                "Employee session purged: restaurant mismatch",
                session_restaurant_id=session.restaurant_id,
                restaurant_id=restaurant_id,
                scope=mask_scope(self._scope_id),
            )
            return None

        if required_role and not _role_allowed(session.employee.role, required_role):
            self._purge()
            self._reject(RejectionReason.ROLE, restaurant_id or session.restaurant_id)
            logger.warning(
                "Employee session purged: role mismatch",
                role=session.employee.role,
                required_role=required_role,
                scope=mask_scope(self._scope_id),
            )
            return None

        self.state = GuardState.AUTHENTICATED
        self.employee = session.employee
        return session.employee

    def require(self, restaurant_id: str, required_role: str | Collection[str] | None = None) -> Employee:
        """
        ``validate_session`` for protected endpoints.

        Raises SessionRequiredError or SessionScopeMismatchError when rejected.
        """
        employee = self.validate_session(restaurant_id, required_role)
        if employee is not None:
            return employee

        redirect_to = self.redirect_to or Routes.login_for(restaurant_id)
        if self.rejection in (RejectionReason.RESTAURANT, RejectionReason.ROLE):
            raise SessionScopeMismatchError(
                self.rejection.value,
                redirect_to,
                required_role=required_role if isinstance(required_role, str) or required_role is None else " ou ".join(required_role),
                restaurant_id=restaurant_id,
            )
        raise SessionRequiredError(redirect_to, restaurant_id=restaurant_id)

    def logout(self, restaurant_id: str | None = None) -> str:
        """Purge the session unconditionally. Returns the page to go to."""
        self._purge()
        self.state = GuardState.UNAUTHENTICATED
        self.employee = None
        self.rejection = None
        self.redirect_to = Routes.login_for(restaurant_id)
        logger.info("Employee session ended", restaurant_id=restaurant_id, scope=mask_scope(self._scope_id))
        return self.redirect_to

    def _reject(self, reason: RejectionReason, restaurant_id: str | None) -> None:
        self.state = GuardState.REJECTED
        self.rejection = reason
        self.redirect_to = Routes.login_for(restaurant_id)

    def _purge(self) -> None:
        if not self._store.remove(self._key):
            # The stale session could not be deleted; it is rejected again on next load
            logger.error("Failed to purge employee session", scope=mask_scope(self._scope_id))
