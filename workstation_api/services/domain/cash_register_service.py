"""
Cash Register Lifecycle Domain Service.

Open -> reinforce / payout / sales -> close, per restaurant.

Each restaurant's shifts live in one append-only ledger key
(``cash-sessions-{restaurant_id}``). Sessions are never deleted; closing
one only changes its status. At most one session per restaurant is open.

Every read-modify-write runs inside ``SessionStore.transaction()``, so the
check-then-create of ``open_session`` is atomic for this process. Two
processes sharing a backend are not fenced against each other: both can see
no open session and both can write, and the later write wins.
"""

import threading
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from shared.config.constants import CashSessionStatus, Limits, PaymentMethods, StorageKeys
from shared.config.logging import get_logger
from shared.infrastructure.events import CASH_SESSIONS_CHANGED
from shared.infrastructure.store import SessionStore
from shared.utils.exceptions import (
    AlreadyOpenError,
    CashSessionNotFoundError,
    InvalidAmountError,
    SessionNotOpenError,
    StorageQuotaError,
    ValidationError,
)
from shared.utils.schemas import CashSession, Payout, Reinforcement

logger = get_logger(__name__)

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal(Limits.MAX_AMOUNT)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MillisecondIds:
    """
    Epoch-millisecond id source that never repeats within the process,
    even when two records are created in the same millisecond.
    """

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def next(self, now_ms: int) -> int:
        with self._lock:
            self._last = max(now_ms, self._last + 1)
            return self._last


# Shared by services that are not given their own id source
default_ids = MillisecondIds()


def to_money(value: Any, allow_zero: bool = False) -> Decimal:
    """
    Normalize a monetary value to a 2-place Decimal.

    Raises InvalidAmountError for non-numeric, non-finite, negative or
    out-of-range values, and for zero unless ``allow_zero``.
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(value)

    if not amount.is_finite() or amount < 0 or amount > MAX_AMOUNT:
        raise InvalidAmountError(value)

    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount == 0 and not allow_zero:
        raise InvalidAmountError(value)
    return amount


class CashRegisterService:
    """
    Domain service for cash register sessions.

    Usage:
        service = CashRegisterService(store)
        session = service.open_session("cantina-nonna", "Luca Marino", Decimal("100.00"))
        service.add_reinforcement(session.id, Decimal("30.00"), "Troco", "Luca Marino")
        service.close_session(session.id, Decimal("130.00"))
    """

    def __init__(
        self,
        store: SessionStore,
        clock: Callable[[], datetime] = utcnow,
        ids: MillisecondIds | None = None,
    ):
        self._store = store
        self._clock = clock
        self._ids = ids if ids is not None else default_ids

    # =========================================================================
    # Ledger access
    # =========================================================================

    def _load(self, restaurant_id: str) -> list[CashSession]:
        raw = self._store.read(StorageKeys.cash_sessions(restaurant_id), default=[])
        if not isinstance(raw, list):
            logger.warning("Cash ledger is not a list, treating as empty", restaurant_id=restaurant_id)
            return []

        sessions = []
        for entry in raw:
            try:
                sessions.append(CashSession.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning("Skipping malformed cash session", restaurant_id=restaurant_id, error=str(e))
        return sessions

    def _save(self, restaurant_id: str, sessions: list[CashSession]) -> None:
        key = StorageKeys.cash_sessions(restaurant_id)
        payload = [s.model_dump(mode="json") for s in sessions]
        if not self._store.write(key, payload, topic=CASH_SESSIONS_CHANGED):
            raise StorageQuotaError(key, restaurant_id=restaurant_id)

    def _ledger_restaurant_ids(self) -> list[str]:
        prefix = StorageKeys.CASH_SESSIONS_PREFIX
        return [key[len(prefix):] for key in self._store.keys(prefix)]

    def _all_sessions(self) -> Iterator[CashSession]:
        for restaurant_id in self._ledger_restaurant_ids():
            yield from self._load(restaurant_id)

    def _locate(self, cash_session_id: str) -> tuple[list[CashSession], int]:
        """Ledger holding the session and the session's index in it."""
        for restaurant_id in self._ledger_restaurant_ids():
            sessions = self._load(restaurant_id)
            for index, session in enumerate(sessions):
                if session.id == cash_session_id:
                    return sessions, index
        raise CashSessionNotFoundError(cash_session_id)

    def _next_id(self, prefix: str) -> str:
        now_ms = int(self._clock().timestamp() * 1000)
        return f"{prefix}-{self._ids.next(now_ms)}"

    @staticmethod
    def _active_index(sessions: list[CashSession]) -> int | None:
        return next((i for i, s in enumerate(sessions) if s.is_open), None)

    # =========================================================================
    # Queries
    # =========================================================================

    def list_sessions(self, restaurant_id: str) -> list[CashSession]:
        """All shifts of a restaurant, oldest first."""
        return self._load(restaurant_id)

    def get_active_session(self, restaurant_id: str) -> CashSession | None:
        """The open session of the restaurant, or None."""
        sessions = self._load(restaurant_id)
        index = self._active_index(sessions)
        return sessions[index] if index is not None else None

    def get_session_by_id(self, cash_session_id: str) -> CashSession | None:
        return next((s for s in self._all_sessions() if s.id == cash_session_id), None)

    def get_reinforcement_by_id(self, reinforcement_id: str) -> Reinforcement | None:
        """Point lookup across every restaurant's ledger. None when absent."""
        for session in self._all_sessions():
            for reinforcement in session.reinforcements:
                if reinforcement.id == reinforcement_id:
                    return reinforcement
        return None

    def get_payout_by_id(self, payout_id: str) -> Payout | None:
        """Point lookup across every restaurant's ledger. None when absent."""
        for session in self._all_sessions():
            for payout in session.payouts:
                if payout.id == payout_id:
                    return payout
        return None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open_session(self, restaurant_id: str, opened_by: str, opening_balance: Any) -> CashSession:
        """
        Open a new shift.

        Raises AlreadyOpenError when the restaurant has an open session,
        InvalidAmountError for a negative opening balance.
        """
        balance = to_money(opening_balance, allow_zero=True)
        if not opened_by:
            raise ValidationError("Informe o operador que está abrindo o caixa.")

        with self._store.transaction():
            sessions = self._load(restaurant_id)
            active = self._active_index(sessions)
            if active is not None:
                raise AlreadyOpenError(restaurant_id, session_id=sessions[active].id)

            session = CashSession(
                id=self._next_id(restaurant_id),
                restaurant_id=restaurant_id,
                status=CashSessionStatus.OPEN,
                opened_by=opened_by,
                opened_at=self._clock(),
                opening_balance=balance,
            )
            sessions.append(session)
            self._save(restaurant_id, sessions)

        logger.info(
            "Cash session opened",
            restaurant_id=restaurant_id,
            session_id=session.id,
            opened_by=opened_by,
            opening_balance=str(balance),
        )
        return session

    def add_reinforcement(
        self,
        cash_session_id: str,
        amount: Any,
        reason: str,
        added_by: str,
    ) -> Reinforcement:
        """
        Add cash to an open session.

        Raises CashSessionNotFoundError, SessionNotOpenError (checked before
        the amount) or InvalidAmountError.
        """
        with self._store.transaction():
            sessions, index = self._locate(cash_session_id)
            session = sessions[index]
            if not session.is_open:
                raise SessionNotOpenError(cash_session_id, restaurant_id=session.restaurant_id)

            reinforcement = Reinforcement(
                id=self._next_id("reinforcement"),
                cash_session_id=session.id,
                amount=to_money(amount),
                reason=reason,
                added_by=added_by,
                timestamp=self._clock(),
            )
            session.reinforcements.append(reinforcement)
            self._save(session.restaurant_id, sessions)

        logger.info(
            "Cash reinforcement added",
            restaurant_id=session.restaurant_id,
            session_id=session.id,
            reinforcement_id=reinforcement.id,
            amount=str(reinforcement.amount),
        )
        return reinforcement

    def add_reinforcement_to_active(
        self,
        restaurant_id: str,
        amount: Any,
        reason: str,
        added_by: str,
    ) -> Reinforcement:
        """Reinforce whichever session is open. Raises SessionNotOpenError when none is."""
        with self._store.transaction():
            active = self.get_active_session(restaurant_id)
            if active is None:
                raise SessionNotOpenError(restaurant_id=restaurant_id)
            return self.add_reinforcement(active.id, amount, reason, added_by)

    def add_payout(self, restaurant_id: str, amount: Any, recipient: str, reason: str) -> Payout:
        """
        Withdraw cash from the open session (sangria).

        Raises SessionNotOpenError or InvalidAmountError.
        """
        with self._store.transaction():
            sessions = self._load(restaurant_id)
            index = self._active_index(sessions)
            if index is None:
                raise SessionNotOpenError(restaurant_id=restaurant_id)

            session = sessions[index]
            payout = Payout(
                id=self._next_id("payout"),
                cash_session_id=session.id,
                amount=to_money(amount),
                recipient=recipient,
                reason=reason,
                timestamp=self._clock(),
            )
            session.payouts.append(payout)
            self._save(restaurant_id, sessions)

        logger.info(
            "Cash payout added",
            restaurant_id=restaurant_id,
            session_id=session.id,
            payout_id=payout.id,
            amount=str(payout.amount),
        )
        return payout

    def record_sale(self, restaurant_id: str, order_id: str, payment_method: str, amount: Any) -> bool:
        """
        Add a finalized order's total to the open session.

        Returns False (and changes nothing) when no session is open or the
        order was already counted.
        """
        if payment_method not in PaymentMethods.ALL:
            raise ValidationError(f"Forma de pagamento inválida: {payment_method}")
        total = to_money(amount, allow_zero=True)

        with self._store.transaction():
            sessions = self._load(restaurant_id)
            index = self._active_index(sessions)
            if index is None:
                logger.warning("No open cash session to add sale to", restaurant_id=restaurant_id, order_id=order_id)
                return False

            session = sessions[index]
            if order_id in session.sales.order_ids:
                logger.warning("Sale already added to session", session_id=session.id, order_id=order_id)
                return False

            session.sales.total += total
            session.sales.by_method[payment_method] = session.sales.by_method.get(payment_method, Decimal("0")) + total
            session.sales.order_ids.append(order_id)
            self._save(restaurant_id, sessions)

        logger.info(
            "Sale recorded",
            restaurant_id=restaurant_id,
            session_id=session.id,
            order_id=order_id,
            payment_method=payment_method,
            amount=str(total),
        )
        return True

    def record_cancellation(self, restaurant_id: str, quantity: int) -> bool:
        """Count cancelled items on the open session. False when no session is open."""
        if quantity < 1:
            raise ValidationError("A quantidade cancelada deve ser positiva.")

        with self._store.transaction():
            sessions = self._load(restaurant_id)
            index = self._active_index(sessions)
            if index is None:
                logger.warning("No open cash session to add cancellation to", restaurant_id=restaurant_id)
                return False

            session = sessions[index]
            session.cancellations.count += quantity
            self._save(restaurant_id, sessions)

        logger.info("Cancellation recorded", restaurant_id=restaurant_id, session_id=session.id, quantity=quantity)
        return True

    def close_session(
        self,
        cash_session_id: str,
        closing_balance: Any,
        closed_by: str | None = None,
    ) -> CashSession:
        """
        Close an open session with the balance counted by the operator.

        The balance is recorded as reported; reconciling it against sales,
        reinforcements and payouts is left to the session report.

        Raises CashSessionNotFoundError, SessionNotOpenError or InvalidAmountError.
        """
        with self._store.transaction():
            sessions, index = self._locate(cash_session_id)
            session = sessions[index]
            if not session.is_open:
                raise SessionNotOpenError(cash_session_id, restaurant_id=session.restaurant_id)

            session.closing_balance = to_money(closing_balance, allow_zero=True)
            session.status = CashSessionStatus.CLOSED
            session.closed_at = self._clock()
            session.closed_by = closed_by
            self._save(session.restaurant_id, sessions)

        logger.info(
            "Cash session closed",
            restaurant_id=session.restaurant_id,
            session_id=session.id,
            closed_by=closed_by,
            closing_balance=str(session.closing_balance),
        )
        return session
