"""Ledger mutation commands for the rollpot CLI.

Handles config creation and the add, edit, undo and reset commands.
"""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel

from rollpot.cli.common import (
    DECIMAL,
    console,
    error_panel,
    fmt_money,
    get_service,
    get_settings,
    run,
    signed,
)


def _show_result(result, title: str) -> None:
    """Print a mutation result, exiting with status 1 on failure."""
    if not result.ok:
        message = result.message
        if result.mismatched:
            message += "\n\nStale trades: " + ", ".join(f"#{n}" for n in result.mismatched)
        error_panel(message, title=f"{title} Failed")
        raise SystemExit(1)

    lines = [f"[green]{result.message}[/green]"]
    if result.view is not None:
        stats = result.view.stats
        lines += [
            "",
            f"Roll Pot:     {fmt_money(stats.roll_pot)}",
            f"Bank:         {fmt_money(stats.bank_total)}",
            f"Total Wealth: {fmt_money(stats.total_wealth)}",
        ]
        if result.view.trades and result.trade_id:
            touched = next((t for t in result.view.trades if t.id == result.trade_id), None)
            if touched is not None:
                lines.append(f"Trade P&L:    {signed(touched.profit_loss)}")
    console.print(Panel(
        "\n".join(lines),
        title=f"[bold]{title}[/bold]",
        border_style="green",
    ))


def _resolve_trade(trades, ref: str):
    """Find a trade by identifier or by sequence number (``7`` or ``#7``).

    An exact identifier match wins over a sequence number.
    """
    by_id = next((t for t in trades if t.id == ref), None)
    if by_id is not None:
        return by_id
    number = ref.lstrip("#")
    if number.isdigit():
        return next((t for t in trades if t.trade_number == int(number)), None)
    return None


@click.command()
@click.option("-f", "--force", is_flag=True, default=False, help="Overwrite an existing config.")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write a template configuration file."""
    from rollpot.config import CONFIG_PATH, create_template_config

    config_path: Path = (ctx.obj or {}).get("config_path") or CONFIG_PATH
    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists:[/yellow] {config_path}")
        console.print("[dim]Use --force to overwrite.[/dim]")
        return

    path = create_template_config(config_path)
    console.print(f"[green]✓[/green] Config written to [cyan]{path}[/cyan]")


@click.command()
@click.argument("description")
@click.argument("stake", type=DECIMAL)
@click.argument("multiplier", type=DECIMAL)
@click.option("--win/--loss", "won", required=True, help="Trade outcome.")
@click.option(
    "-d", "--date",
    "trade_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Trade date (YYYY-MM-DD). Defaults to today.",
)
@click.pass_context
def add(
    ctx: click.Context,
    description: str,
    stake: Decimal,
    multiplier: Decimal,
    won: bool,
    trade_date: Optional[datetime],
) -> None:
    """Record a new trade.

    STAKE is drawn from the Roll Pot, or from the Bank while the Roll Pot
    is empty. MULTIPLIER is the payout multiple on a win.

    \b
    Examples:
      rollpot add "Match A" 100 2.0 --win
      rollpot add "Match B" 50 3.5 --loss --date 2026-01-14
    """
    from rollpot.models import TradeInput

    settings = get_settings(ctx)
    service = get_service(settings)

    trade = TradeInput(
        trade_date=trade_date.date() if trade_date else date.today(),
        description=description,
        multiplier=multiplier,
        stake=stake,
        outcome="win" if won else "loss",
    )
    _show_result(run(service.add(trade)), "Add Trade")


@click.command()
@click.argument("trade_ref")
@click.option("--description", default=None, help="New description.")
@click.option("-s", "--stake", type=DECIMAL, default=None, help="New stake.")
@click.option("-m", "--multiplier", type=DECIMAL, default=None, help="New multiplier.")
@click.option("--win/--loss", "won", default=None, help="New outcome.")
@click.option(
    "-d", "--date",
    "trade_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="New trade date (YYYY-MM-DD).",
)
@click.pass_context
def edit(
    ctx: click.Context,
    trade_ref: str,
    description: Optional[str],
    stake: Optional[Decimal],
    multiplier: Optional[Decimal],
    won: Optional[bool],
    trade_date: Optional[datetime],
) -> None:
    """Edit a past trade and recompute every trade after it.

    TRADE_REF is a trade number (e.g. 3 or #3) or a trade ID. Options
    not given keep their current value. The edit is refused if any later
    trade would no longer be affordable.

    \b
    Examples:
      rollpot edit 1 --stake 80
      rollpot edit '#4' --loss
    """
    settings = get_settings(ctx)
    service = get_service(settings)

    loaded = run(service.reload())
    if not loaded.ok:
        _show_result(loaded, "Edit Trade")

    current = _resolve_trade(loaded.view.trades, trade_ref)
    if current is None:
        error_panel(f"Trade {trade_ref} not found", title="Edit Trade Failed")
        raise SystemExit(1)

    updates = {}
    if description is not None:
        updates["description"] = description
    if stake is not None:
        updates["stake"] = stake
    if multiplier is not None:
        updates["multiplier"] = multiplier
    if won is not None:
        updates["outcome"] = "win" if won else "loss"
    if trade_date is not None:
        updates["trade_date"] = trade_date.date()

    if not updates:
        console.print("[yellow]Nothing to change.[/yellow]")
        return

    trade = current.inputs.model_copy(update=updates)
    _show_result(run(service.edit(current.id, trade)), f"Edit Trade #{current.trade_number}")


@click.command()
@click.option("-y", "--yes", is_flag=True, default=False, help="Skip confirmation.")
@click.pass_context
def undo(ctx: click.Context, yes: bool) -> None:
    """Delete the most recent trade."""
    settings = get_settings(ctx)
    service = get_service(settings)

    loaded = run(service.reload())
    if not loaded.ok:
        _show_result(loaded, "Undo")
    if not loaded.view.trades:
        console.print("[dim]No trades to undo.[/dim]")
        return

    latest = loaded.view.trades[0]
    if not yes and not click.confirm(
        f"Undo last trade (#{latest.trade_number})? This will delete it."
    ):
        console.print("[dim]Cancelled.[/dim]")
        return

    _show_result(run(service.undo()), "Undo")


@click.command()
@click.option("-y", "--yes", is_flag=True, default=False, help="Skip confirmation.")
@click.pass_context
def reset(ctx: click.Context, yes: bool) -> None:
    """Delete every trade and return to the starting balances."""
    settings = get_settings(ctx)
    service = get_service(settings)

    if not yes and not click.confirm(
        "Are you sure you want to reset all data? This cannot be undone."
    ):
        console.print("[dim]Cancelled.[/dim]")
        return

    _show_result(run(service.reset()), "Reset")
