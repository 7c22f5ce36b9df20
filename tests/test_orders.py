"""
Tests for table orders: service writes, kitchen bumps, payment and item
cancellation feeding the cash session.
"""

from decimal import Decimal

import pytest

from shared.utils.exceptions import (
    InvalidAmountError,
    InvalidTransitionError,
    OrderFinalizedError,
    OrderItemNotFoundError,
    OrderNotFoundError,
    ValidationError,
)
from shared.utils.schemas import OrderItemInput
from workstation_api.services.domain import WorkstationRefresher

R1 = "r1"


def _line(item_id: str, quantity: int = 1, price: str = "10.00", **kwargs) -> OrderItemInput:
    return OrderItemInput(item_id=item_id, name=item_id.title(), quantity=quantity, unit_price=Decimal(price), **kwargs)


@pytest.fixture
def order(order_service):
    """Table 4: two pizzas, one soda at the bar, one dessert."""
    return order_service.save_order(
        R1,
        "mesa-4",
        "4",
        [
            _line("pizza", 2, "10.00"),
            _line("refrigerante", 1, "5.50", department="Copa"),
            _line("pudim", 1, "3.00"),
        ],
    )


def _line_id(order, item_id: str) -> str:
    return next(i.line_id for i in order.items if i.item_id == item_id)


class TestSaveOrder:
    def test_new_order(self, order, clock):
        assert order.id.startswith("order-")
        assert order.status == "Aberto"
        assert order.created_at == clock.now
        assert [i.status for i in order.items] == ["Pendente"] * 3
        assert len({i.line_id for i in order.items}) == 3

    def test_writes_publish_orders_changed(self, order_service, recorded_topics):
        order_service.save_order(R1, "mesa-1", "1", [_line("pizza")])
        assert recorded_topics == ["ordersChanged"]

    def test_table_order_is_updated_in_place(self, order_service, order, clock):
        clock.advance(60)
        lines = [
            _line("pizza", 3, "10.00", line_id=_line_id(order, "pizza")),
            _line("cafe", 1, "4.00"),
        ]
        updated = order_service.save_order(R1, "mesa-4", "4", lines)

        assert updated.id == order.id
        assert [(i.item_id, i.quantity) for i in updated.items] == [("pizza", 3), ("cafe", 1)]
        assert updated.updated_at == clock.now
        # Existing lines keep their creation time
        assert updated.items[0].created_at == order.created_at
        assert len(order_service.list_orders(R1)) == 1

    def test_draft_lines_are_sent_to_the_kitchen(self, order_service):
        draft = order_service.save_order(R1, "mesa-2", "2", [_line("pizza", status="Lançamento")])
        line_id = draft.items[0].line_id

        sent = order_service.save_order(R1, "mesa-2", "2", [_line("pizza", line_id=line_id, status="Pendente")])
        assert sent.items[0].status == "Pendente"

    def test_new_line_cannot_start_ready(self, order_service):
        with pytest.raises(ValidationError):
            order_service.save_order(R1, "mesa-1", "1", [_line("pizza", status="Pronto")])

    def test_line_cannot_skip_the_kitchen(self, order_service, order):
        lines = [_line("pizza", 2, line_id=_line_id(order, "pizza"), status="Entregue")]
        with pytest.raises(InvalidTransitionError):
            order_service.save_order(R1, "mesa-4", "4", lines)

    def test_repeated_line_is_rejected(self, order_service, order):
        line_id = _line_id(order, "pizza")
        with pytest.raises(ValidationError):
            order_service.save_order(R1, "mesa-4", "4", [_line("pizza", line_id=line_id), _line("pizza", line_id=line_id)])

    def test_cancelled_lines_are_kept(self, order_service, order):
        order_service.cancel_item(R1, order.id, _line_id(order, "pudim"), "Davi")

        updated = order_service.save_order(R1, "mesa-4", "4", [_line("cafe")])
        assert sorted((i.item_id, i.status) for i in updated.items) == [("cafe", "Pendente"), ("pudim", "Cancelado")]

    def test_unknown_order_id(self, order_service):
        with pytest.raises(OrderNotFoundError):
            order_service.save_order(R1, "mesa-1", "1", [], order_id="order-1")

    def test_negative_price(self, order_service):
        with pytest.raises(InvalidAmountError):
            order_service.save_order(R1, "mesa-1", "1", [_line("pizza", price="-1")])

    def test_paid_table_gets_a_new_order(self, order_service, order):
        order_service.finalize(R1, order.id, "Pix")
        second = order_service.save_order(R1, "mesa-4", "4", [_line("cafe")])

        assert second.id != order.id
        assert order_service.get_order_by_table(R1, "mesa-4") == second
        assert [o.id for o in order_service.list_active(R1)] == [second.id]

    def test_orders_of_other_restaurants_are_separate(self, order_service, order, store):
        assert order_service.list_orders("r2") == []
        assert store.keys("orders-") == [f"orders-{R1}"]


class TestOrderStatus:
    def test_awaiting_payment_and_back(self, order_service, order):
        assert order_service.update_status(R1, order.id, "Aguardando Pagamento").status == "Aguardando Pagamento"
        assert order_service.update_status(R1, order.id, "Aberto").status == "Aberto"

    def test_finalized_only_through_payment(self, order_service, order):
        with pytest.raises(InvalidTransitionError):
            order_service.update_status(R1, order.id, "Finalizado")


class TestKitchenDisplay:
    def test_queue_lists_pending_lines_by_department(self, order_service, order):
        kitchen = order_service.production_queue(R1, "Cozinha")
        bar = order_service.production_queue(R1, "Copa")

        assert sorted(t.item.item_id for t in kitchen) == ["pizza", "pudim"]
        assert [t.item.item_id for t in bar] == ["refrigerante"]
        assert all(t.table_number == "4" and t.order_id == order.id for t in kitchen)

    def test_bump_ready_then_delivered(self, order_service, order):
        pizza = _line_id(order, "pizza")
        order_service.update_item_status(R1, [(order.id, pizza)], "Pronto")
        assert order_service.get_order(R1, order.id).items[0].status == "Pronto"

        order_service.update_item_status(R1, [(order.id, pizza)], "Entregue")
        assert "pizza" not in [t.item.item_id for t in order_service.production_queue(R1)]

    def test_batch_with_a_bad_line_changes_nothing(self, order_service, order, recorded_topics):
        pizza = _line_id(order, "pizza")
        pudim = _line_id(order, "pudim")
        order_service.update_item_status(R1, [(order.id, pizza)], "Pronto")
        recorded_topics.clear()

        # pudim is still Pendente, pizza cannot go Pronto -> Pronto
        with pytest.raises(InvalidTransitionError):
            order_service.update_item_status(R1, [(order.id, pudim), (order.id, pizza)], "Pronto")

        assert order_service.get_order(R1, order.id).items[2].status == "Pendente"
        assert recorded_topics == []

    def test_unknown_line(self, order_service, order):
        with pytest.raises(OrderItemNotFoundError):
            order_service.update_item_status(R1, [(order.id, "nope")], "Pronto")

    def test_cancelling_is_not_a_kitchen_bump(self, order_service, order):
        with pytest.raises(ValidationError):
            order_service.update_item_status(R1, [(order.id, _line_id(order, "pizza"))], "Cancelado")

    def test_kitchen_refresher_reloads_on_order_writes(self, order_service, bus, monotonic_clock):
        refresher = WorkstationRefresher("kitchen", lambda: order_service.production_queue(R1), bus, clock=monotonic_clock)
        try:
            order_service.save_order(R1, "mesa-1", "1", [_line("pizza")])
            assert refresher.reloads == 1
            assert [t.item.item_id for t in refresher.snapshot] == ["pizza"]
        finally:
            refresher.close()


class TestFinalize:
    def test_sale_reaches_the_open_cash_session(self, order_service, cash_service, order, recorded_topics):
        cash_service.open_session(R1, "Ana", "100.00")
        recorded_topics.clear()

        paid, recorded = order_service.finalize(R1, order.id, "Pix", include_service_fee=True)

        # 2 x 10.00 + 5.50 + 3.00 = 28.50, plus 10% service fee
        assert recorded is True
        assert paid.status == "Finalizado"
        assert paid.total == Decimal("31.35")
        assert paid.service_fee_applied is True
        sales = cash_service.get_active_session(R1).sales
        assert sales.total == Decimal("31.35")
        assert sales.by_method["Pix"] == Decimal("31.35")
        assert sales.order_ids == [order.id]
        assert recorded_topics == ["cashSessionsChanged", "ordersChanged"]

    def test_cancelled_lines_are_not_charged(self, order_service, cash_service, order):
        cash_service.open_session(R1, "Ana", "0")
        order_service.cancel_item(R1, order.id, _line_id(order, "pizza"), "Davi")

        paid, _ = order_service.finalize(R1, order.id, "Dinheiro", amount_paid="10.00")
        assert paid.total == Decimal("8.50")
        assert paid.amount_paid == Decimal("10.00")

    def test_without_open_session_the_order_is_still_paid(self, order_service, cash_service, order):
        paid, recorded = order_service.finalize(R1, order.id, "Débito")

        assert recorded is False
        assert paid.is_finalized
        assert cash_service.list_sessions(R1) == []

    def test_finalize_twice(self, order_service, order):
        order_service.finalize(R1, order.id, "Pix")
        with pytest.raises(OrderFinalizedError) as exc_info:
            order_service.finalize(R1, order.id, "Pix")
        assert exc_info.value.status_code == 409

    def test_paid_order_cannot_change(self, order_service, order):
        order_service.finalize(R1, order.id, "Pix")
        with pytest.raises(OrderFinalizedError):
            order_service.save_order(R1, "mesa-4", "4", [], order_id=order.id)
        with pytest.raises(OrderFinalizedError):
            order_service.cancel_item(R1, order.id, _line_id(order, "pizza"), "Davi")

    def test_amount_paid_below_total(self, order_service, order):
        with pytest.raises(ValidationError):
            order_service.finalize(R1, order.id, "Dinheiro", amount_paid="20.00")
        assert not order_service.get_order(R1, order.id).is_finalized

    def test_unknown_payment_method(self, order_service, order):
        with pytest.raises(ValidationError):
            order_service.finalize(R1, order.id, "Cheque")


class TestCancelItem:
    def test_quantity_is_counted_on_the_session(self, order_service, cash_service, order, clock):
        cash_service.open_session(R1, "Ana", "0")

        cancelled_order, cancelled = order_service.cancel_item(R1, order.id, _line_id(order, "pizza"), "Davi")

        assert cancelled is True
        line = cancelled_order.items[0]
        assert (line.status, line.cancelled_by, line.cancelled_at) == ("Cancelado", "Davi", clock.now)
        assert cash_service.get_active_session(R1).cancellations.count == 2

    def test_second_cancel_is_a_no_op(self, order_service, cash_service, order, recorded_topics):
        cash_service.open_session(R1, "Ana", "0")
        line_id = _line_id(order, "pudim")
        order_service.cancel_item(R1, order.id, line_id, "Davi")
        recorded_topics.clear()

        _, cancelled = order_service.cancel_item(R1, order.id, line_id, "Davi")

        assert cancelled is False
        assert recorded_topics == []
        assert cash_service.get_active_session(R1).cancellations.count == 1

    def test_requires_who_cancelled(self, order_service, order):
        with pytest.raises(ValidationError):
            order_service.cancel_item(R1, order.id, _line_id(order, "pizza"), "  ")

    def test_unknown_line(self, order_service, order):
        with pytest.raises(OrderItemNotFoundError):
            order_service.cancel_item(R1, order.id, "nope", "Davi")
