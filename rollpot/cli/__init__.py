"""CLI commands for rollpot.

This package provides the command-line interface for recording trades
and reviewing the Roll Pot / Bank ledger.
"""

from rollpot.cli.main import cli, main

__all__ = ["cli", "main"]
