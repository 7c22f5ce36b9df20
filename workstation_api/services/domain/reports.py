"""
Session reports and printable receipts.

Reconciliation lives here, outside the cash register service: closing a
session records the counted balance as reported, and the report compares it
with what the drawer should hold.
"""

import textwrap
from datetime import datetime
from decimal import Decimal

from shared.config.constants import PaymentMethods
from shared.utils.schemas import CashSession, Payout, Reinforcement, Restaurant, SessionReport

RECEIPT_WIDTH = 40
TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M"


def format_brl(value: Decimal) -> str:
    """Format a monetary value as Brazilian reais: ``R$ 1.234,56``."""
    quantized = Decimal(value).quantize(Decimal("0.01"))
    sign = "-" if quantized < 0 else ""
    integer, _, cents = f"{abs(quantized):.2f}".partition(".")
    groups = []
    while len(integer) > 3:
        groups.insert(0, integer[-3:])
        integer = integer[:-3]
    groups.insert(0, integer)
    return f"{sign}R$ {'.'.join(groups)},{cents}"


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def build_session_report(session: CashSession) -> SessionReport:
    """
    Reconcile a session without changing it.

    expected cash = opening balance + cash sales + reinforcements - payouts
    difference    = closing balance - expected cash (closed sessions only)
    """
    reinforcements_total = sum((r.amount for r in session.reinforcements), Decimal("0"))
    payouts_total = sum((p.amount for p in session.payouts), Decimal("0"))
    cash_sales = session.sales.by_method.get(PaymentMethods.CASH, Decimal("0"))
    expected_cash = session.opening_balance + cash_sales + reinforcements_total - payouts_total

    difference = None
    if not session.is_open and session.closing_balance is not None:
        difference = session.closing_balance - expected_cash

    return SessionReport(
        session_id=session.id,
        restaurant_id=session.restaurant_id,
        status=session.status,
        opened_by=session.opened_by,
        opened_at=session.opened_at,
        closed_by=session.closed_by,
        closed_at=session.closed_at,
        opening_balance=session.opening_balance,
        cash_sales=cash_sales,
        total_sales=session.sales.total,
        sales_by_method=dict(session.sales.by_method),
        reinforcements_total=reinforcements_total,
        payouts_total=payouts_total,
        expected_cash=expected_cash,
        closing_balance=session.closing_balance,
        difference=difference,
        cancelled_items=session.cancellations.count,
    )


# =============================================================================
# Receipts
# =============================================================================


def _center(text: str) -> str:
    return text.upper().center(RECEIPT_WIDTH).rstrip()


def _paragraph(text: str) -> list[str]:
    return textwrap.wrap(text, RECEIPT_WIDTH)


def _receipt(title: str, restaurant: Restaurant, body: list[str], signature: str) -> str:
    rule = "-" * RECEIPT_WIDTH
    lines = [
        _center(title),
        _center(restaurant.name),
        rule,
        *body,
        rule,
        "",
        "",
        ("_" * 30).center(RECEIPT_WIDTH).rstrip(),
        signature.center(RECEIPT_WIDTH).rstrip(),
    ]
    return "\n".join(lines) + "\n"


def render_reinforcement_receipt(reinforcement: Reinforcement, restaurant: Restaurant) -> str:
    body = [
        *_paragraph(
            f"Este documento comprova a entrada no caixa do restaurante {restaurant.name.upper()} "
            f"da quantia de {format_brl(reinforcement.amount)}."
        ),
        "",
        "MOTIVO:",
        *_paragraph(reinforcement.reason.upper()),
        "",
        f"Operador: {reinforcement.added_by}",
        f"Data: {format_timestamp(reinforcement.timestamp)}",
        f"Valor: {format_brl(reinforcement.amount)}",
    ]
    return _receipt("Recibo de Reforço de Caixa", restaurant, body, "Assinatura do Supervisor")


def render_payout_receipt(payout: Payout, restaurant: Restaurant) -> str:
    body = [
        *_paragraph(
            f"Este documento comprova a retirada do caixa do restaurante {restaurant.name.upper()} "
            f"da quantia de {format_brl(payout.amount)}."
        ),
        "",
        "MOTIVO:",
        *_paragraph(payout.reason.upper()),
        "",
        f"Recebedor: {payout.recipient}",
        f"Data: {format_timestamp(payout.timestamp)}",
        f"Valor: {format_brl(payout.amount)}",
    ]
    return _receipt("Recibo de Sangria", restaurant, body, "Assinatura do Recebedor")
