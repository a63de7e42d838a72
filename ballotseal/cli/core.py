"""CLI commands: init, vote, close, results."""

from __future__ import annotations

import sys

import click
from rich.panel import Panel
from rich.table import Table

from ballotseal import __version__
from ballotseal.cli import DEFAULT_DB, cli, console, get_engine, run_async
from ballotseal.exceptions import BallotSealError


@cli.command()
@click.option("--db", default=DEFAULT_DB, envvar="BALLOTSEAL_DB", help="Database path")
@click.option("--ledger-db", default=None, help="Local ledger database path")
def init(db, ledger_db) -> None:
    """Initialize the BALLOTSEAL database."""

    async def _init():
        engine = get_engine(db, ledger_db)
        try:
            await engine.init_db()
            console.print(
                Panel(
                    f"[bold green]✓ BALLOTSEAL v{__version__} initialized[/]\nDatabase: {engine.db_path}",
                    title="BALLOTSEAL",
                    border_style="green",
                )
            )
        finally:
            await engine.close()

    run_async(_init())


@cli.command()
@click.argument("election_id")
@click.argument("candidate_id")
@click.option("--user", "-u", required=True, help="Authenticated user id")
@click.option("--db", default=DEFAULT_DB, envvar="BALLOTSEAL_DB", help="Database path")
@click.option("--ledger-db", default=None, help="Local ledger database path")
def vote(election_id, candidate_id, user, db, ledger_db) -> None:
    """Cast a vote (salt from BALLOTSEAL_SECRET_SALT)."""

    async def _vote():
        engine = get_engine(db, ledger_db)
        try:
            await engine.init_db()
            return await engine.votes.cast(user, election_id, candidate_id)
        finally:
            await engine.close()

    try:
        receipt = run_async(_vote()).unwrap()
    except BallotSealError as e:
        console.print(f"[red]✗ {type(e).__name__}:[/] {e}")
        sys.exit(1)

    console.print(
        Panel(
            f"[bold cyan]Election:[/] {receipt.election_id}\n"
            f"[bold cyan]Ballot tag:[/] {receipt.ballot_tag}\n"
            f"[bold cyan]Nonce:[/] {receipt.nonce}\n"
            f"[bold cyan]Cast at:[/] {receipt.cast_at}",
            title="Vote receipt (keep it private)",
            border_style="green",
        )
    )


@cli.command()
@click.argument("election_id")
@click.option("--db", default=DEFAULT_DB, envvar="BALLOTSEAL_DB", help="Database path")
@click.option("--ledger-db", default=None, help="Local ledger database path")
def close(election_id, db, ledger_db) -> None:
    """Close an election and anchor its Merkle root."""

    async def _close():
        engine = get_engine(db, ledger_db)
        try:
            await engine.init_db()
            with console.status("[bold yellow]Building Merkle tree and anchoring...[/]"):
                return await engine.closer.close(election_id)
        finally:
            await engine.close()

    try:
        receipt = run_async(_close()).unwrap()
    except BallotSealError as e:
        console.print(f"[red]✗ {type(e).__name__}:[/] {e}")
        sys.exit(1)

    console.print(f"[green]✓[/] Election [bold]{election_id}[/] closed ({receipt.ballot_count} ballots)")
    console.print(f"   Merkle root:    [bold]{receipt.merkle_root}[/]")
    console.print(f"   Results digest: [bold]{receipt.results_digest}[/]")


@cli.command()
@click.argument("election_id")
@click.option("--db", default=DEFAULT_DB, envvar="BALLOTSEAL_DB", help="Database path")
def results(election_id, db) -> None:
    """Show per-candidate results."""

    async def _results():
        engine = get_engine(db)
        try:
            await engine.init_db()
            election = await engine.elections.get(election_id)
            if election is None:
                return None, []
            return election, await engine.elections.results(election_id)
        finally:
            await engine.close()

    election, rows = run_async(_results())
    if election is None:
        console.print(f"[red]✗ Election {election_id} not found[/]")
        sys.exit(1)

    table = Table(title=f"Results — {election.title}")
    table.add_column("Candidate", style="cyan")
    table.add_column("Name")
    table.add_column("Votes", justify="right", style="bold")
    for r in rows:
        table.add_row(r.candidate_id, r.name, str(r.votes))
    console.print(table)
    state = "closed" if not election.is_active else "open"
    console.print(f"[dim]State: {state} | Root: {election.merkle_root or '-'}[/]")
