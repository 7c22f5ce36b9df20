"""
Workstation CLI.

Cash register operations against the configured session store, for
back-office use and scripting.

Usage:
    workstation open-register cantina-nonna --operator "Luca Marino" --balance 100.00
    workstation reinforce cantina-nonna 30.00 --reason Troco --operator "Luca Marino"
    workstation close-register cantina-nonna-1718000000000 130.00
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from shared.config.logging import setup_logging
from shared.config.settings import settings
from shared.infrastructure.store import SessionStore, build_session_store
from shared.utils.exceptions import AppException, CashSessionNotFoundError, ReinforcementNotFoundError
from shared.utils.schemas import CashSession
from workstation_api.services.domain import (
    CashRegisterService,
    RestaurantRoster,
    build_session_report,
    format_brl,
    load_seed,
    render_reinforcement_receipt,
)

app = typer.Typer(
    name="workstation",
    help="Restaurant workstation CLI",
    add_completion=False,
)
console = Console()


def _configured_store() -> SessionStore:
    return build_session_store(settings)


# Replaced in tests
store_factory: Callable[[], SessionStore] = _configured_store


@contextmanager
def _store() -> Iterator[SessionStore]:
    """Open the store for one command; AppException becomes a red notice and exit code 1."""
    setup_logging()
    store = store_factory()
    try:
        yield store
    except AppException as e:
        console.print(f"[red]✗ {e.detail}[/red]")
        raise typer.Exit(1)
    finally:
        store.close()


def _print_session(session: CashSession) -> None:
    table = Table(title=f"Sessão {session.id}")
    table.add_column("Campo", style="cyan")
    table.add_column("Valor")
    table.add_row("Status", session.status)
    table.add_row("Aberto por", session.opened_by)
    table.add_row("Aberto em", session.opened_at.strftime("%d/%m/%Y %H:%M"))
    table.add_row("Fundo de troco", format_brl(session.opening_balance))
    table.add_row("Reforços", str(len(session.reinforcements)))
    table.add_row("Sangrias", str(len(session.payouts)))
    table.add_row("Vendas", format_brl(session.sales.total))
    if session.closed_at:
        table.add_row("Fechado em", session.closed_at.strftime("%d/%m/%Y %H:%M"))
        table.add_row("Saldo final", format_brl(session.closing_balance))
    console.print(table)


# =============================================================================
# Cash register commands
# =============================================================================


@app.command()
def open_register(
    restaurant_id: str = typer.Argument(..., help="Restaurant id"),
    operator: str = typer.Option(..., "--operator", "-o", help="Who opens the register"),
    balance: str = typer.Option("0", "--balance", "-b", help="Opening balance"),
):
    """Open the restaurant's cash register."""
    with _store() as store:
        session = CashRegisterService(store).open_session(restaurant_id, operator, balance)
        console.print(f"[green]✓ Caixa aberto: {session.id}[/green]")
        _print_session(session)


@app.command()
def reinforce(
    restaurant_id: str = typer.Argument(..., help="Restaurant id"),
    amount: str = typer.Argument(..., help="Amount to add"),
    reason: str = typer.Option(..., "--reason", "-r", help="Reason for the reinforcement"),
    operator: str = typer.Option(..., "--operator", "-o", help="Who adds the cash"),
):
    """Add cash to the open register."""
    with _store() as store:
        reinforcement = CashRegisterService(store).add_reinforcement_to_active(restaurant_id, amount, reason, operator)
        console.print(f"[green]✓ Reforço {reinforcement.id} de {format_brl(reinforcement.amount)} adicionado[/green]")


@app.command()
def close_register(
    session_id: str = typer.Argument(..., help="Cash session id"),
    balance: str = typer.Argument(..., help="Counted closing balance"),
    operator: Optional[str] = typer.Option(None, "--operator", "-o", help="Who closes the register"),
):
    """Close a cash session with the counted balance."""
    with _store() as store:
        session = CashRegisterService(store).close_session(session_id, balance, operator)
        console.print(f"[green]✓ Caixa fechado: {session.id}[/green]")
        _print_session(session)


@app.command()
def active_session(restaurant_id: str = typer.Argument(..., help="Restaurant id")):
    """Show the open cash session of a restaurant."""
    with _store() as store:
        session = CashRegisterService(store).get_active_session(restaurant_id)
        if session is None:
            console.print("[yellow]Nenhuma sessão de caixa aberta[/yellow]")
            return
        _print_session(session)


@app.command()
def reinforcement_receipt(
    restaurant_id: str = typer.Argument(..., help="Restaurant id"),
    reinforcement_id: str = typer.Argument(..., help="Reinforcement id"),
):
    """Print a reinforcement receipt."""
    with _store() as store:
        restaurant = RestaurantRoster(store, load_seed(settings.roster_seed_path)).get(restaurant_id)
        reinforcement = CashRegisterService(store).get_reinforcement_by_id(reinforcement_id)
        if reinforcement is None:
            raise ReinforcementNotFoundError(reinforcement_id)
        console.print(render_reinforcement_receipt(reinforcement, restaurant), markup=False, highlight=False)


@app.command()
def session_report(session_id: str = typer.Argument(..., help="Cash session id")):
    """Reconcile a cash session: expected cash against the counted balance."""
    with _store() as store:
        session = CashRegisterService(store).get_session_by_id(session_id)
        if session is None:
            raise CashSessionNotFoundError(session_id)
        report = build_session_report(session)

        table = Table(title=f"Relatório da sessão {report.session_id}")
        table.add_column("Item", style="cyan")
        table.add_column("Valor", justify="right")
        table.add_row("Fundo de troco", format_brl(report.opening_balance))
        for method, total in report.sales_by_method.items():
            table.add_row(f"Vendas ({method})", format_brl(total))
        table.add_row("(+) Reforços", format_brl(report.reinforcements_total))
        table.add_row("(-) Sangrias", format_brl(report.payouts_total))
        table.add_row("(=) Esperado em caixa", format_brl(report.expected_cash))
        if report.closing_balance is not None:
            table.add_row("Saldo informado", format_brl(report.closing_balance))
        if report.difference is not None:
            style = "green" if report.difference == 0 else "red"
            table.add_row("Diferença", f"[{style}]{format_brl(report.difference)}[/{style}]")
        table.add_row("Itens cancelados", str(report.cancelled_items))
        console.print(table)


if __name__ == "__main__":
    app()
