"""Shared helpers for rollpot CLI commands."""

import asyncio
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from rollpot.config import ConfigError, Settings, load_settings

console = Console()


class DecimalType(click.ParamType):
    """Click parameter that parses exact decimal amounts."""

    name = "decimal"

    def convert(self, value, param, ctx):
        if isinstance(value, Decimal):
            return value
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            self.fail(f"{value!r} is not a valid number", param, ctx)
        if not result.is_finite():
            self.fail(f"{value!r} is not a valid number", param, ctx)
        return result


DECIMAL = DecimalType()


def error_panel(message: str, title: str = "Error") -> None:
    """Print an error panel."""
    console.print(Panel(
        f"[red]{escape(message)}[/red]",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))


def get_settings(ctx: click.Context) -> Settings:
    """Load settings for the current invocation, exiting on a bad config."""
    config_path: Optional[Path] = (ctx.obj or {}).get("config_path")
    try:
        return load_settings(config_path)
    except ConfigError as e:
        error_panel(str(e), title="Configuration Error")
        raise SystemExit(1)


def get_service(settings: Settings):
    """Build a LedgerService over the configured SQLite store."""
    from rollpot.db.base import StoreError
    from rollpot.db.store import SQLiteLedgerStore
    from rollpot.ledger import LedgerService

    try:
        store = SQLiteLedgerStore(settings.db_path)
    except StoreError as e:
        error_panel(str(e), title="Storage Error")
        raise SystemExit(1)
    return LedgerService(store, settings)


def run(coro):
    """Run an orchestrator coroutine to completion."""
    return asyncio.run(coro)


def fmt_money(value: Decimal) -> str:
    """Format an amount with two decimals and thousands separators."""
    return f"{value:,.2f}"


def signed(value: Decimal) -> str:
    """Colored, signed amount for rich output."""
    color = "green" if value >= 0 else "red"
    sign = "+" if value >= 0 else ""
    return f"[{color}]{sign}{fmt_money(value)}[/{color}]"
