"""CLI commands: prove, verify, audit, ledger verify."""

from __future__ import annotations

import json
import sys

import click
from rich.panel import Panel

from ballotseal import config
from ballotseal.cli import DEFAULT_DB, cli, console, get_engine, run_async
from ballotseal.exceptions import BallotSealError
from ballotseal.ledger import SQLiteLedger
from ballotseal.proofs import verify as verify_proof


@cli.command()
@click.argument("election_id")
@click.argument("ballot_tag")
@click.option("--db", default=DEFAULT_DB, envvar="BALLOTSEAL_DB", help="Database path")
@click.option("--ledger-db", default=None, help="Local ledger database path")
def prove(election_id, ballot_tag, db, ledger_db) -> None:
    """Print the inclusion proof of a ballot as JSON."""

    async def _prove():
        engine = get_engine(db, ledger_db)
        try:
            await engine.init_db()
            return await engine.audit.ballot_proof(election_id, ballot_tag)
        finally:
            await engine.close()

    try:
        payload = run_async(_prove()).unwrap()
    except BallotSealError as e:
        console.print(f"[red]✗ {type(e).__name__}:[/] {e}")
        sys.exit(1)

    click.echo(json.dumps(payload, indent=2))


@cli.command()
@click.argument("proof_file", type=click.Path(exists=True))
@click.option("--root", default=None, help="Expected root (defaults to the file's merkle_root)")
@click.option("--tag", default=None, help="Ballot tag (defaults to the proof's ballot_tag)")
def verify(proof_file, root, tag) -> None:
    """Verify a proof offline. No database is touched."""
    with open(proof_file, encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            console.print(f"[red]✗ Not valid JSON:[/] {e}")
            sys.exit(1)

    proof = payload.get("proof", payload) if isinstance(payload, dict) else payload
    expected_root = root or (payload.get("merkle_root") if isinstance(payload, dict) else None)
    ballot_tag = tag or (proof.get("ballot_tag") if isinstance(proof, dict) else None)

    if not expected_root or not ballot_tag:
        console.print("[red]✗ Need a root and a ballot tag (from the file or --root/--tag)[/]")
        sys.exit(1)

    if verify_proof(ballot_tag, proof, expected_root):
        console.print(f"[bold green]✓ VALID[/] ballot {ballot_tag[:16]}… is included under {expected_root[:16]}…")
    else:
        console.print("[bold red]✗ INVALID[/] proof does not reconstruct the expected root")
        sys.exit(1)


@cli.command()
@click.argument("election_id")
@click.option("--db", default=DEFAULT_DB, envvar="BALLOTSEAL_DB", help="Database path")
@click.option("--ledger-db", default=None, help="Local ledger database path")
def audit(election_id, db, ledger_db) -> None:
    """Recompute an election's root and digest and cross-check the ledger."""

    async def _audit():
        engine = get_engine(db, ledger_db)
        try:
            await engine.init_db()
            with console.status("[bold yellow]Auditing election...[/]"):
                return await engine.audit.audit_election(election_id)
        finally:
            await engine.close()

    try:
        report = run_async(_audit()).unwrap()
    except BallotSealError as e:
        console.print(f"[red]✗ {type(e).__name__}:[/] {e}")
        sys.exit(1)

    if report["valid"]:
        console.print(
            Panel(
                f"[bold green]✓ AUDIT PASSED[/]\n"
                f"Ballots checked: {report['ballots_checked']}\n"
                f"Merkle root: {report['merkle_root']}\n"
                f"Ledger root: {report['ledger_root']}",
                title=election_id,
                border_style="green",
            )
        )
        return

    console.print(
        Panel(
            f"[bold red]✗ AUDIT FAILED[/]\nViolations: {len(report['violations'])}",
            title=election_id,
            border_style="red",
        )
    )
    for v in report["violations"]:
        console.print(f"  [red]•[/] {v['type']}: expected {v['expected']}, got {v['actual']}")
    sys.exit(1)


@click.group()
def ledger() -> None:
    """Local ledger maintenance."""


@ledger.command("verify")
@click.option("--ledger-db", default=None, help="Local ledger database path")
def ledger_verify(ledger_db) -> None:
    """Verify the local ledger's hash chain."""

    async def _verify():
        local = SQLiteLedger(ledger_db or config.LEDGER_DB_PATH)
        try:
            with console.status("[bold yellow]Verifying hash chain...[/]"):
                return await local.verify_chain_integrity()
        finally:
            await local.close()

    report = run_async(_verify())
    if report["valid"]:
        console.print(
            Panel(
                f"[bold green]✓ LEDGER VERIFIED[/]\nEntries checked: {report['entries_checked']}",
                title="Hash chain",
                border_style="green",
            )
        )
        return

    console.print(
        Panel(
            f"[bold red]✗ LEDGER COMPROMISED[/]\nViolations: {len(report['violations'])}",
            title="Hash chain",
            border_style="red",
        )
    )
    for v in report["violations"]:
        console.print(f"  [red]•[/] entry {v['entry_id']}: {v['type']}")
    sys.exit(1)
