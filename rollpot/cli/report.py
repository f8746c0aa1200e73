"""Reporting commands for the rollpot CLI.

Handles the trade history, current status with goal tracking,
time-bucketed summaries, consistency checks and wealth snapshots.
"""

from datetime import datetime

import click
import pytz
from rich.panel import Panel
from rich.table import Table

from rollpot.cli.common import (
    console,
    error_panel,
    fmt_money,
    get_service,
    get_settings,
    run,
    signed,
)


def _load_view(ctx: click.Context):
    settings = get_settings(ctx)
    service = get_service(settings)
    result = run(service.reload())
    if not result.ok:
        error_panel(result.message, title="Storage Error")
        raise SystemExit(1)
    return settings, service, result.view


def _local(instant: datetime, timezone: str) -> str:
    return instant.astimezone(pytz.timezone(timezone)).strftime("%Y-%m-%d %I:%M %p")


@click.command()
@click.option("-n", "--limit", type=int, default=20, help="Number of trades to show.")
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """Show recorded trades, newest first."""
    settings, _, view = _load_view(ctx)

    if not view.trades:
        console.print(Panel(
            "[dim]No trades recorded yet[/dim]",
            title="[bold]Trade History[/bold]",
            border_style="dim",
        ))
        return

    table = Table(
        title="Trade History",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("#", justify="right", style="bold")
    table.add_column("Date")
    table.add_column("Description", max_width=30)
    table.add_column("Stake", justify="right")
    table.add_column("Mult", justify="right")
    table.add_column("Result")
    table.add_column("P&L", justify="right")
    table.add_column("Banked", justify="right")
    table.add_column("Roll Pot", justify="right")
    table.add_column("Bank", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Recorded", style="dim")

    for trade in view.trades[:limit]:
        result = "[green]WIN[/green]" if trade.outcome == "win" else "[red]LOSS[/red]"
        table.add_row(
            str(trade.trade_number),
            trade.trade_date.isoformat(),
            trade.description or "-",
            fmt_money(trade.stake),
            f"{trade.multiplier}x",
            result,
            signed(trade.profit_loss),
            fmt_money(trade.amount_banked),
            fmt_money(trade.roll_pot_after),
            fmt_money(trade.bank_total_after),
            fmt_money(trade.total_wealth_after),
            _local(trade.created_at, settings.timezone),
        )

    console.print(table)
    if len(view.trades) > limit:
        console.print(f"[dim]Showing {limit} of {len(view.trades)} trades[/dim]")


@click.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show balances, win rate and goal progress."""
    from rollpot.engine.stats import format_countdown, goal_progress, mini_goal, next_boundary

    settings, _, view = _load_view(ctx)
    stats = view.stats

    progress = goal_progress(stats.total_wealth, settings.target_goal)
    now = datetime.now(pytz.utc)
    boundary = next_boundary(now, settings.mini_goal_hours, settings.timezone)
    target = mini_goal(stats.total_wealth, settings.mini_compound_rate)

    bar_width = 30
    filled = max(0, min(bar_width, int(progress / 100 * bar_width)))
    bar = "█" * filled + "░" * (bar_width - filled)

    console.print(Panel(
        f"[bold]Roll Pot:[/bold]     {fmt_money(stats.roll_pot)}\n"
        f"[bold]Bank:[/bold]         {fmt_money(stats.bank_total)}\n"
        f"[bold]Total Wealth:[/bold] {fmt_money(stats.total_wealth)}\n\n"
        f"Trades: {stats.total_trades}  "
        f"[green]Wins: {stats.wins}[/green]  "
        f"[red]Losses: {stats.losses}[/red]  "
        f"Success: {stats.success_rate:.1f}%\n\n"
        f"Goal {fmt_money(settings.target_goal)}: [cyan]{bar}[/cyan] {progress:.1f}%\n"
        f"Mini goal ({settings.mini_compound_rate * 100:.1f}% / {settings.mini_goal_hours}h): "
        f"{fmt_money(target)} in {format_countdown(boundary - now)}",
        title="[bold]Ledger Status[/bold]",
        border_style="cyan",
    ))


@click.command()
@click.option(
    "-b", "--by",
    "granularity",
    type=click.Choice(["hour", "day", "week"]),
    default="day",
    help="Bucket size.",
)
@click.pass_context
def summary(ctx: click.Context, granularity: str) -> None:
    """Summarize P&L per hour, day or week of recording."""
    from rollpot.engine.buckets import summarize_by_bucket

    settings, _, view = _load_view(ctx)
    buckets = summarize_by_bucket(view.trades, granularity, settings.timezone)

    if not buckets:
        console.print("[dim]No trades recorded yet[/dim]")
        return

    table = Table(
        title=f"P&L by {granularity} ({settings.timezone})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Period", style="bold")
    table.add_column("Trades", justify="right")
    table.add_column("Wins", justify="right", style="green")
    table.add_column("Losses", justify="right", style="red")
    table.add_column("P&L", justify="right")

    for bucket in buckets:
        table.add_row(
            bucket.label,
            str(bucket.trades),
            str(bucket.wins),
            str(bucket.losses),
            signed(bucket.profit_loss),
        )

    console.print(table)


@click.command()
@click.option("--fix", is_flag=True, default=False, help="Rewrite stale balances from a fresh replay.")
@click.pass_context
def check(ctx: click.Context, fix: bool) -> None:
    """Verify stored balances against a fresh replay of every trade."""
    settings = get_settings(ctx)
    service = get_service(settings)

    result = run(service.verify())
    if result.ok:
        console.print(f"[green]✓[/green] {result.message}")
        return

    message = result.message
    if result.mismatched:
        message += "\n\nStale trades: " + ", ".join(f"#{n}" for n in result.mismatched)
    error_panel(message, title="Ledger Inconsistent")

    if fix and result.mismatched:
        repaired = run(service.recompute_and_reload())
        if repaired.ok:
            console.print("[green]✓[/green] Balances rewritten")
            return
        error_panel(repaired.message, title="Repair Failed")
    raise SystemExit(1)


@click.command()
@click.option("-n", "--limit", type=int, default=20, help="Number of snapshots to show.")
@click.pass_context
def snapshots(ctx: click.Context, limit: int) -> None:
    """List wealth snapshots captured at each mini-goal block."""
    from rollpot.db.base import StoreError

    settings, service, _ = _load_view(ctx)
    try:
        captured = run(service.list_snapshots())
    except StoreError as e:
        error_panel(str(e), title="Storage Error")
        raise SystemExit(1)

    if not captured:
        console.print("[dim]No snapshots captured yet[/dim]")
        return

    table = Table(title="Wealth Snapshots", show_header=True, header_style="bold cyan")
    table.add_column("Captured", style="bold")
    table.add_column("Roll Pot", justify="right")
    table.add_column("Bank", justify="right")
    table.add_column("Total", justify="right")

    for snap in captured[:limit]:
        table.add_row(
            _local(snap.captured_at, settings.timezone),
            fmt_money(snap.roll_pot),
            fmt_money(snap.bank_total),
            fmt_money(snap.total_wealth),
        )

    console.print(table)
