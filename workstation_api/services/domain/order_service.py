"""
Order Service.

One ledger per restaurant under ``orders-{restaurant_id}``. The service
workstation writes orders and cancels lines, the kitchen display bumps line
statuses, and the cashier finalizes. Every write publishes ``ordersChanged``.

Paying an order records the sale on the open cash session, and cancelling a
line adds its quantity to the session's cancellation count, both through
CashRegisterService.
"""

import secrets
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from shared.config.constants import (
    ORDER_ITEM_TRANSITIONS,
    ORDER_TRANSITIONS,
    Limits,
    OrderItemStatus,
    OrderStatus,
    PaymentMethods,
    StorageKeys,
)
from shared.config.logging import get_logger
from shared.infrastructure.events import ORDERS_CHANGED
from shared.infrastructure.store import SessionStore
from shared.utils.exceptions import (
    InvalidTransitionError,
    OrderFinalizedError,
    OrderItemNotFoundError,
    OrderNotFoundError,
    StorageQuotaError,
    ValidationError,
)
from shared.utils.schemas import Order, OrderItem, OrderItemInput, ProductionTicket

from .cash_register_service import CENT, CashRegisterService, MillisecondIds, default_ids, to_money, utcnow

logger = get_logger(__name__)

SERVICE_FEE_RATE = Decimal(Limits.SERVICE_FEE_RATE)

# Statuses a line can be created with
NEW_LINE_STATUSES = (OrderItemStatus.DRAFT, OrderItemStatus.PENDING)

# Lines the kitchen display shows
PRODUCTION_STATUSES = (OrderItemStatus.PENDING, OrderItemStatus.READY)


def validate_item_transition(current: str, target: str) -> None:
    if target not in ORDER_ITEM_TRANSITIONS.get(current, []):
        raise InvalidTransitionError("item do pedido", current, target)


class OrderService:
    """
    Usage:
        orders = OrderService(store)
        order = orders.save_order("cantina-nonna", "mesa-4", "4", [OrderItemInput(...)])
        orders.finalize(order.restaurant_id, order.id, "Pix", include_service_fee=True)
    """

    def __init__(
        self,
        store: SessionStore,
        cash_service: CashRegisterService | None = None,
        clock: Callable[[], datetime] = utcnow,
        ids: MillisecondIds | None = None,
    ):
        self._store = store
        self._clock = clock
        self._ids = ids if ids is not None else default_ids
        self._cash = cash_service or CashRegisterService(store, clock=clock, ids=self._ids)

    # =========================================================================
    # Ledger access
    # =========================================================================

    def _load(self, restaurant_id: str) -> list[Order]:
        raw = self._store.read(StorageKeys.orders(restaurant_id), default=[])
        if not isinstance(raw, list):
            logger.warning("Order ledger is not a list, treating as empty", restaurant_id=restaurant_id)
            return []

        orders = []
        for entry in raw:
            try:
                orders.append(Order.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning("Skipping malformed order", restaurant_id=restaurant_id, error=str(e))
        return orders

    def _save(self, restaurant_id: str, orders: list[Order]) -> None:
        key = StorageKeys.orders(restaurant_id)
        if not self._store.write(key, [o.model_dump(mode="json") for o in orders], topic=ORDERS_CHANGED):
            raise StorageQuotaError(key, restaurant_id=restaurant_id)

    @staticmethod
    def _find(orders: list[Order], restaurant_id: str, order_id: str) -> Order:
        order = next((o for o in orders if o.id == order_id), None)
        if order is None:
            raise OrderNotFoundError(order_id, restaurant_id=restaurant_id)
        return order

    def _now_ms(self) -> int:
        return int(self._clock().timestamp() * 1000)

    def _new_line_id(self) -> str:
        return f"{self._now_ms()}{secrets.token_hex(3)}"

    # =========================================================================
    # Queries
    # =========================================================================

    def list_orders(self, restaurant_id: str) -> list[Order]:
        return self._load(restaurant_id)

    def list_active(self, restaurant_id: str) -> list[Order]:
        """Orders not yet paid."""
        return [o for o in self._load(restaurant_id) if not o.is_finalized]

    def get_order(self, restaurant_id: str, order_id: str) -> Order:
        """Raises OrderNotFoundError."""
        return self._find(self._load(restaurant_id), restaurant_id, order_id)

    def get_order_by_table(self, restaurant_id: str, table_id: str) -> Order | None:
        """The table's unpaid order, if any."""
        return next((o for o in self.list_active(restaurant_id) if o.table_id == table_id), None)

    def production_queue(self, restaurant_id: str, department: str | None = None) -> list[ProductionTicket]:
        """Pending and ready lines of unpaid orders, oldest first."""
        tickets = [
            ProductionTicket(order_id=order.id, table_number=order.table_number, item=item)
            for order in self.list_active(restaurant_id)
            for item in order.items
            if item.status in PRODUCTION_STATUSES and (department is None or item.department == department)
        ]
        return sorted(tickets, key=lambda t: t.item.created_at)

    # =========================================================================
    # Service workstation
    # =========================================================================

    def _merge_items(self, existing: list[OrderItem], incoming: list[OrderItemInput], now: datetime) -> list[OrderItem]:
        """
        New item list of an order.

        Cancelled lines always stay, so the cancellation count can be traced
        to its lines. Other lines missing from ``incoming`` are dropped.
        """
        by_id = {item.line_id: item for item in existing}
        merged = [item for item in existing if item.is_cancelled]
        seen: set[str] = set()

        for line in incoming:
            current = by_id.get(line.line_id) if line.line_id else None
            if current is not None and current.is_cancelled:
                continue

            if line.line_id in seen:
                raise ValidationError(f"Item repetido no pedido: {line.line_id}")

            unit_price = to_money(line.unit_price, allow_zero=True)
            if current is None:
                status = line.status or OrderItemStatus.PENDING
                if status not in NEW_LINE_STATUSES:
                    raise ValidationError(f"Um item novo não pode começar como '{status}'.")
                item = OrderItem(
                    line_id=line.line_id or self._new_line_id(),
                    item_id=line.item_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    department=line.department,
                    print_group=line.print_group,
                    status=status,
                    created_at=now,
                )
            else:
                if line.status and line.status != current.status:
                    validate_item_transition(current.status, line.status)
                item = current.model_copy(
                    update={
                        "item_id": line.item_id,
                        "name": line.name,
                        "quantity": line.quantity,
                        "unit_price": unit_price,
                        "department": line.department,
                        "print_group": line.print_group,
                        "status": line.status or current.status,
                    }
                )

            seen.add(item.line_id)
            merged.append(item)

        return merged

    def save_order(
        self,
        restaurant_id: str,
        table_id: str,
        table_number: str,
        items: list[OrderItemInput],
        order_id: str | None = None,
        client_cpf: str | None = None,
    ) -> Order:
        """
        Create or update an order.

        Without ``order_id`` the table's unpaid order is updated, or a new
        one is opened. Raises OrderNotFoundError for an unknown ``order_id``
        and OrderFinalizedError for a paid one.
        """
        now = self._clock()

        with self._store.transaction():
            orders = self._load(restaurant_id)
            if order_id:
                order = self._find(orders, restaurant_id, order_id)
            else:
                order = next((o for o in orders if o.table_id == table_id and not o.is_finalized), None)

            if order is None:
                order = Order(
                    id=f"order-{self._ids.next(self._now_ms())}",
                    restaurant_id=restaurant_id,
                    table_id=table_id,
                    table_number=table_number,
                    items=self._merge_items([], items, now),
                    status=OrderStatus.OPEN,
                    client_cpf=client_cpf,
                    created_at=now,
                )
                orders.append(order)
                created = True
            else:
                if order.is_finalized:
                    raise OrderFinalizedError(order.id, restaurant_id=restaurant_id)
                order.items = self._merge_items(order.items, items, now)
                order.table_id = table_id
                order.table_number = table_number
                order.client_cpf = client_cpf or order.client_cpf
                order.updated_at = now
                created = False

            self._save(restaurant_id, orders)

        logger.info(
            "Order opened" if created else "Order updated",
            restaurant_id=restaurant_id,
            order_id=order.id,
            table=table_number,
            lines=len(order.items),
        )
        return order

    def update_status(self, restaurant_id: str, order_id: str, status: str) -> Order:
        """
        Move an unpaid order between ``Aberto`` and ``Aguardando Pagamento``.

        Raises OrderNotFoundError, OrderFinalizedError or InvalidTransitionError.
        """
        with self._store.transaction():
            orders = self._load(restaurant_id)
            order = self._find(orders, restaurant_id, order_id)
            if order.is_finalized:
                raise OrderFinalizedError(order_id, restaurant_id=restaurant_id)
            if status not in ORDER_TRANSITIONS.get(order.status, []):
                raise InvalidTransitionError("pedido", order.status, status)

            previous = order.status
            order.status = status
            order.updated_at = self._clock()
            self._save(restaurant_id, orders)

        logger.info("Order status updated", restaurant_id=restaurant_id, order_id=order_id, from_status=previous, to_status=status)
        return order

    def cancel_item(self, restaurant_id: str, order_id: str, line_id: str, cancelled_by: str) -> tuple[Order, bool]:
        """
        Cancel one line and count its quantity on the open cash session.

        Returns the order and whether the line was cancelled now (False when
        it was already cancelled). Raises OrderNotFoundError,
        OrderItemNotFoundError or OrderFinalizedError.
        """
        if not cancelled_by or not cancelled_by.strip():
            raise ValidationError("Informe quem autorizou o cancelamento.")

        with self._store.transaction():
            orders = self._load(restaurant_id)
            order = self._find(orders, restaurant_id, order_id)
            if order.is_finalized:
                raise OrderFinalizedError(order_id, restaurant_id=restaurant_id)

            item = next((i for i in order.items if i.line_id == line_id), None)
            if item is None:
                raise OrderItemNotFoundError(line_id, restaurant_id=restaurant_id, order_id=order_id)
            if item.is_cancelled:
                return order, False

            item.status = OrderItemStatus.CANCELED
            item.cancelled_by = cancelled_by.strip()
            item.cancelled_at = self._clock()
            order.updated_at = item.cancelled_at
            self._save(restaurant_id, orders)
            self._cash.record_cancellation(restaurant_id, item.quantity)

        logger.info(
            "Order item cancelled",
            restaurant_id=restaurant_id,
            order_id=order_id,
            line_id=line_id,
            quantity=item.quantity,
            cancelled_by=item.cancelled_by,
        )
        return order, True

    # =========================================================================
    # Kitchen display
    # =========================================================================

    def update_item_status(self, restaurant_id: str, lines: list[tuple[str, str]], status: str) -> list[Order]:
        """
        Move a batch of ``(order_id, line_id)`` lines to ``status``.

        Every line is checked before anything is written, so a batch with one
        bad line changes nothing. Cancelling goes through ``cancel_item``.
        """
        if status == OrderItemStatus.CANCELED:
            raise ValidationError("Use o cancelamento de item para cancelar.")

        wanted: dict[str, set[str]] = defaultdict(set)
        for order_id, line_id in lines:
            wanted[order_id].add(line_id)

        with self._store.transaction():
            orders = self._load(restaurant_id)
            now = self._clock()
            touched = []
            for order_id, line_ids in wanted.items():
                order = self._find(orders, restaurant_id, order_id)
                if order.is_finalized:
                    raise OrderFinalizedError(order_id, restaurant_id=restaurant_id)

                items = {item.line_id: item for item in order.items}
                missing = line_ids - items.keys()
                if missing:
                    raise OrderItemNotFoundError(sorted(missing)[0], restaurant_id=restaurant_id, order_id=order_id)
                for line_id in line_ids:
                    validate_item_transition(items[line_id].status, status)
                touched.append((order, line_ids))

            for order, line_ids in touched:
                for item in order.items:
                    if item.line_id in line_ids:
                        item.status = status
                order.updated_at = now
            self._save(restaurant_id, orders)

        logger.info("Order items updated", restaurant_id=restaurant_id, lines=len(lines), status=status)
        return [order for order, _ in touched]

    # =========================================================================
    # Cashier
    # =========================================================================

    def finalize(
        self,
        restaurant_id: str,
        order_id: str,
        payment_method: str,
        include_service_fee: bool = False,
        amount_paid: Any = None,
        client_cpf: str | None = None,
    ) -> tuple[Order, bool]:
        """
        Close an order as paid and add its total to the open cash session.

        The total is the subtotal of the lines not cancelled, plus the 10%
        service fee when requested. Returns the order and whether the sale
        was recorded (False when no cash session is open).

        Raises OrderNotFoundError, OrderFinalizedError, ValidationError or
        InvalidAmountError.
        """
        if payment_method not in PaymentMethods.ALL:
            raise ValidationError(f"Forma de pagamento inválida: {payment_method}")

        with self._store.transaction():
            orders = self._load(restaurant_id)
            order = self._find(orders, restaurant_id, order_id)
            if order.is_finalized:
                raise OrderFinalizedError(order_id, restaurant_id=restaurant_id)

            subtotal = order.subtotal
            total = subtotal * (1 + SERVICE_FEE_RATE) if include_service_fee else subtotal
            total = total.quantize(CENT, rounding=ROUND_HALF_UP)

            paid = to_money(amount_paid, allow_zero=True) if amount_paid is not None else None
            if paid is not None and paid < total:
                raise ValidationError("O valor pago é menor que o total do pedido.", order_id=order_id)

            # Sale first: it is deduplicated by order id, so a retry after a
            # failed order write does not count it twice
            sale_recorded = self._cash.record_sale(restaurant_id, order.id, payment_method, total)

            order.status = OrderStatus.FINALIZED
            order.payment_method = payment_method
            order.total = total
            order.service_fee_applied = include_service_fee
            order.amount_paid = paid
            order.client_cpf = client_cpf or order.client_cpf
            order.updated_at = self._clock()
            self._save(restaurant_id, orders)

        logger.info(
            "Order finalized",
            restaurant_id=restaurant_id,
            order_id=order_id,
            payment_method=payment_method,
            total=str(total),
            sale_recorded=sale_recorded,
        )
        return order, sale_recorded
