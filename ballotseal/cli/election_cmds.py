"""CLI commands: election create, list, show."""

from __future__ import annotations

import json
import sys

import click
from rich.panel import Panel
from rich.table import Table

from ballotseal.cli import DEFAULT_DB, console, get_engine, run_async
from ballotseal.elections import NewCandidate
from ballotseal.exceptions import BallotSealError


@click.group()
def election() -> None:
    """Create and inspect elections."""


def _parse_candidate(raw: str) -> NewCandidate:
    """``"Name=Description"`` or ``"id:Name=Description"``."""
    candidate_id = None
    if ":" in raw.split("=", 1)[0]:
        candidate_id, raw = raw.split(":", 1)
    name, sep, description = raw.partition("=")
    if not sep:
        raise click.BadParameter(f"Expected NAME=DESCRIPTION, got {raw!r}", param_hint="--candidate")
    return NewCandidate(name=name, description=description, candidate_id=candidate_id)


def _candidates_from_file(path: str) -> tuple[dict, list[NewCandidate]]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    candidates = [
        NewCandidate(
            name=c.get("name", ""),
            description=c.get("description", ""),
            candidate_id=c.get("id"),
        )
        for c in data.get("candidates", [])
    ]
    return data, candidates


@election.command("create")
@click.option("--title", "-t", default=None, help="Election title")
@click.option("--description", "-d", default=None, help="Election description")
@click.option("--start", default=None, help="Start date (ISO 8601)")
@click.option("--end", default=None, help="End date (ISO 8601)")
@click.option("--candidate", "-c", multiple=True, help="NAME=DESCRIPTION (repeatable)")
@click.option("--from-file", "from_file", type=click.Path(exists=True), default=None,
              help="JSON definition with title, description, start_date, end_date, candidates")
@click.option("--created-by", default=None, help="Creator user id")
@click.option("--db", default=DEFAULT_DB, envvar="BALLOTSEAL_DB", help="Database path")
def create_election(title, description, start, end, candidate, from_file, created_by, db) -> None:
    """Create an election."""
    if from_file:
        data, candidates = _candidates_from_file(from_file)
        title = title or data.get("title", "")
        description = description or data.get("description", "")
        start = start or data.get("start_date", "")
        end = end or data.get("end_date", "")
    else:
        candidates = [_parse_candidate(c) for c in candidate]

    async def _create():
        engine = get_engine(db)
        try:
            await engine.init_db()
            return await engine.elections.create(
                title or "", description or "", start or "", end or "", candidates, created_by=created_by
            )
        finally:
            await engine.close()

    try:
        created = run_async(_create())
    except BallotSealError as e:
        console.print(f"[red]✗ {type(e).__name__}:[/] {e}")
        sys.exit(1)

    console.print(f"[green]✓[/] Created election [bold]{created.id}[/]")
    console.print(f"   Definition hash: [dim]{created.definition_hash}[/]")


@election.command("list")
@click.option("--active/--closed", default=None, help="Filter by state")
@click.option("--db", default=DEFAULT_DB, envvar="BALLOTSEAL_DB", help="Database path")
def list_elections(active, db) -> None:
    """List elections, newest first."""

    async def _list():
        engine = get_engine(db)
        try:
            await engine.init_db()
            return await engine.elections.list(active=active)
        finally:
            await engine.close()

    elections = run_async(_list())
    if not elections:
        console.print("[dim]No elections found.[/]")
        return

    table = Table(title=f"Elections ({len(elections)})")
    table.add_column("ID", style="bold")
    table.add_column("Title", style="cyan")
    table.add_column("Window")
    table.add_column("State")
    table.add_column("Candidates", justify="right")
    for e in elections:
        state = "[green]open[/]" if e.is_active else "[yellow]closed[/]"
        table.add_row(e.id, e.title, f"{e.start_date} → {e.end_date}", state, str(len(e.candidates)))
    console.print(table)


@election.command("show")
@click.argument("election_id")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.option("--db", default=DEFAULT_DB, envvar="BALLOTSEAL_DB", help="Database path")
def show_election(election_id, as_json, db) -> None:
    """Show one election."""

    async def _show():
        engine = get_engine(db)
        try:
            await engine.init_db()
            return await engine.elections.get(election_id)
        finally:
            await engine.close()

    found = run_async(_show())
    if found is None:
        console.print(f"[red]✗ Election {election_id} not found[/]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(found.to_dict(), indent=2))
        return

    candidates = "\n".join(
        f"  [cyan]{c.candidate_id}[/] {c.name} [dim]({c.description})[/]" for c in found.candidates
    )
    console.print(
        Panel(
            f"[bold]{found.title}[/]\n{found.description}\n\n"
            f"Window: {found.start_date} → {found.end_date}\n"
            f"State: {'open' if found.is_active else 'closed'}\n"
            f"Definition hash: {found.definition_hash}\n"
            f"Merkle root: {found.merkle_root or '-'}\n"
            f"Results digest: {found.results_digest or '-'}\n\n"
            f"Candidates:\n{candidates}",
            title=found.id,
            border_style="cyan",
        )
    )
