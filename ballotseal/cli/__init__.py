"""
BALLOTSEAL CLI — Package init.

Re-exports the main CLI group and shared utilities.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from ballotseal import __version__
from ballotseal.config import DEFAULT_DB_PATH
from ballotseal.engine import BallotSealEngine
from ballotseal.ledger import SQLiteLedger

console = Console()
DEFAULT_DB = str(DEFAULT_DB_PATH)


def get_engine(db: str = DEFAULT_DB, ledger_db: Optional[str] = None) -> BallotSealEngine:
    """Create an engine; ``ledger_db`` forces the local hash-chained ledger."""
    ledger = SQLiteLedger(ledger_db) if ledger_db else None
    return BallotSealEngine(db_path=db, ledger=ledger)


def run_async(coro):
    """Helper to run async coroutines from sync CLI."""
    return asyncio.run(coro)


# ─── Main Group ──────────────────────────────────────────────────

@click.group()
@click.version_option(__version__, prog_name="ballotseal")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """BALLOTSEAL — anonymous ballot commitments and Merkle proofs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# ─── Register all sub-modules ───────────────────────────────────
from ballotseal.cli import core  # noqa: E402, F401
from ballotseal.cli import election_cmds  # noqa: E402, F401
from ballotseal.cli import audit_cmds  # noqa: E402, F401

# ─── Registration ────────────────────────────────────────────────
from ballotseal.cli.election_cmds import election  # noqa: E402
from ballotseal.cli.audit_cmds import ledger  # noqa: E402

cli.add_command(election)
cli.add_command(ledger)


if __name__ == "__main__":
    cli()
