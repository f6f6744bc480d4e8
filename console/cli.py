"""CLI interface for the voter/vote record store."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Optional, TypeVar

import typer
from pydantic import ValidationError

from console.config import StoreConfig, load_config
from console.transfer import dump_records, insert_records, read_records
from store.repository import RecordStore
from vote_core.errors import FatalStoreError, NotFoundError
from vote_core.schemas import MAX_IDENTIFIER, BaseSchema, IdPolicy, Vote, Voter

app = typer.Typer(help="Case vote record store CLI")

T = TypeVar("T")


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to store YAML config"),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="SQLite database path"),
    id_policy: Optional[IdPolicy] = typer.Option(
        None, "--id-policy", help="Identifier policy (counter or size)"
    ),
) -> None:
    """Manage voter and vote records."""
    try:
        config = load_config(config_path) if config_path else StoreConfig()
    except FileNotFoundError as e:
        typer.secho(f"❌ Config file not found: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(f"❌ Invalid config: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    if db_path is not None:
        config.db_path = db_path
    if id_policy is not None:
        config.id_policy = id_policy

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


def _store(ctx: typer.Context) -> RecordStore:
    config: StoreConfig = ctx.obj
    try:
        return RecordStore(config.db_path, id_policy=config.id_policy)
    except ValueError as e:
        typer.secho(f"❌ Cannot open store: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def _run(operation: Callable[[], T]) -> T:
    """Run a store call, turning store errors into a non-zero exit."""
    try:
        return operation()
    except NotFoundError as e:
        typer.secho(f"❌ Not found: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except FatalStoreError as e:
        typer.secho(f"❌ Aborted: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def _build(factory: Callable[[], T]) -> T:
    try:
        return factory()
    except ValidationError as e:
        typer.secho(f"❌ Invalid record: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def _echo_records(records: Sequence[BaseSchema]) -> None:
    typer.echo("[" + ", ".join(record.to_json() for record in records) + "]")


@app.command()
def init(ctx: typer.Context) -> None:
    """Create an empty store (no-op if it already exists)."""
    store = _store(ctx)
    typer.secho("✅ Store ready", fg=typer.colors.GREEN)
    typer.echo(f"   Database:  {store.db_path}")
    typer.echo(f"   Id policy: {store.id_policy.value}")


@app.command()
def add_voter(
    ctx: typer.Context,
    case_id: int = typer.Option(..., help="Case identifier"),
    voter: str = typer.Option(..., help="Voter account"),
    amount_hold: int = typer.Option(..., help="Amount held"),
    vote_credit: int = typer.Option(..., help="Remaining vote credit"),
) -> None:
    """Insert a voter record and print its assigned id."""
    record = _build(
        lambda: Voter(
            case_id=case_id, voter=voter, amount_hold=amount_hold, vote_credit=vote_credit
        )
    )
    store = _store(ctx)
    typer.echo(_run(lambda: store.insert_voter(record)))


@app.command()
def add_vote(
    ctx: typer.Context,
    case_id: int = typer.Option(..., help="Case identifier"),
    evidence_id: int = typer.Option(..., help="Evidence identifier"),
    voter: str = typer.Option(..., help="Voter account"),
    yes_credit: int = typer.Option(0, help="Credit on yes (0-255)"),
    no_credit: int = typer.Option(0, help="Credit on no (0-255)"),
    distribution_reward: int = typer.Option(0, help="Reward distribution weight (0-255)"),
) -> None:
    """Insert a vote record and print its assigned id."""
    record = _build(
        lambda: Vote(
            case_id=case_id,
            evidence_id=evidence_id,
            voter=voter,
            yes_credit=yes_credit,
            no_credit=no_credit,
            distribution_reward=distribution_reward,
        )
    )
    store = _store(ctx)
    typer.echo(_run(lambda: store.insert_vote(record)))


@app.command()
def update_voter(
    ctx: typer.Context,
    voter_id: int = typer.Argument(..., min=0, max=MAX_IDENTIFIER, help="Voter id to replace"),
    case_id: int = typer.Option(..., help="Case identifier"),
    voter: str = typer.Option(..., help="Voter account"),
    amount_hold: int = typer.Option(..., help="Amount held"),
    vote_credit: int = typer.Option(..., help="Remaining vote credit"),
) -> None:
    """Replace a voter record in full."""
    record = _build(
        lambda: Voter(
            case_id=case_id, voter=voter, amount_hold=amount_hold, vote_credit=vote_credit
        )
    )
    store = _store(ctx)
    _run(lambda: store.update_voter(voter_id, record))
    typer.secho(f"✅ Voter {voter_id} updated", fg=typer.colors.GREEN)


@app.command()
def update_vote(
    ctx: typer.Context,
    vote_id: int = typer.Argument(..., min=0, max=MAX_IDENTIFIER, help="Vote id to replace"),
    case_id: int = typer.Option(..., help="Case identifier"),
    evidence_id: int = typer.Option(..., help="Evidence identifier"),
    voter: str = typer.Option(..., help="Voter account"),
    yes_credit: int = typer.Option(0, help="Credit on yes (0-255)"),
    no_credit: int = typer.Option(0, help="Credit on no (0-255)"),
    distribution_reward: int = typer.Option(0, help="Reward distribution weight (0-255)"),
) -> None:
    """Replace a vote record in full."""
    record = _build(
        lambda: Vote(
            case_id=case_id,
            evidence_id=evidence_id,
            voter=voter,
            yes_credit=yes_credit,
            no_credit=no_credit,
            distribution_reward=distribution_reward,
        )
    )
    store = _store(ctx)
    _run(lambda: store.update_vote(vote_id, record))
    typer.secho(f"✅ Vote {vote_id} updated", fg=typer.colors.GREEN)


@app.command()
def remove_voter(
    ctx: typer.Context,
    voter_id: int = typer.Argument(..., min=0, max=MAX_IDENTIFIER, help="Voter id to delete"),
) -> None:
    """Delete a voter record. Votes referring to it are kept."""
    store = _store(ctx)
    _run(lambda: store.delete_voter(voter_id))
    typer.secho(f"✅ Voter {voter_id} deleted", fg=typer.colors.GREEN)


@app.command()
def remove_vote(
    ctx: typer.Context,
    vote_id: int = typer.Argument(..., min=0, max=MAX_IDENTIFIER, help="Vote id to delete"),
) -> None:
    """Delete a vote record."""
    store = _store(ctx)
    _run(lambda: store.delete_vote(vote_id))
    typer.secho(f"✅ Vote {vote_id} deleted", fg=typer.colors.GREEN)


@app.command()
def get_voter(
    ctx: typer.Context,
    voter_id: int = typer.Argument(..., min=0, max=MAX_IDENTIFIER, help="Voter id to show"),
) -> None:
    """Show one voter record."""
    record = _store(ctx).get_voter(voter_id)
    if record is None:
        typer.secho(f"No voter with id {voter_id}.", fg=typer.colors.YELLOW)
        return
    typer.echo(record.to_json())


@app.command()
def get_vote(
    ctx: typer.Context,
    vote_id: int = typer.Argument(..., min=0, max=MAX_IDENTIFIER, help="Vote id to show"),
) -> None:
    """Show one vote record."""
    record = _store(ctx).get_vote(vote_id)
    if record is None:
        typer.secho(f"No vote with id {vote_id}.", fg=typer.colors.YELLOW)
        return
    typer.echo(record.to_json())


@app.command()
def list_voters(ctx: typer.Context) -> None:
    """List all voter records in id order."""
    _echo_records(_store(ctx).list_voters())


@app.command()
def list_votes(
    ctx: typer.Context,
    evidence_id: Optional[int] = typer.Option(
        None, min=0, max=MAX_IDENTIFIER, help="Only votes on this evidence"
    ),
) -> None:
    """List vote records in id order, optionally filtered by evidence."""
    store = _store(ctx)
    if evidence_id is None:
        _echo_records(store.list_votes())
    else:
        _echo_records(store.list_votes_for_evidence(evidence_id))


@app.command()
def load(
    ctx: typer.Context,
    records_path: str = typer.Argument(..., help="YAML file with voters/votes lists"),
    progress: bool = typer.Option(True, help="Show progress bars"),
) -> None:
    """Bulk-insert records from a YAML file."""
    try:
        voters, votes = read_records(records_path)
    except FileNotFoundError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(f"❌ Invalid records: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    store = _store(ctx)
    assigned = _run(lambda: insert_records(store, voters, votes, show_progress=progress))
    typer.secho(
        f"✅ Loaded {len(assigned['voters'])} voter(s) and {len(assigned['votes'])} vote(s)",
        fg=typer.colors.GREEN,
    )


@app.command()
def dump(
    ctx: typer.Context,
    output_path: str = typer.Argument(..., help="YAML file to write"),
) -> None:
    """Export all records, with their ids, to a YAML file."""
    dump_records(_store(ctx), output_path)
    typer.secho(f"✅ Records written to {output_path}", fg=typer.colors.GREEN)


@app.command()
def upload_code(
    ctx: typer.Context,
    source_path: str = typer.Argument(..., help="Path to the logic source to register"),
) -> None:
    """Register a logic blob and print its code hash."""
    path = Path(source_path)
    if not path.exists():
        typer.secho(f"❌ Source not found: {source_path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    store = _store(ctx)
    typer.echo(store.upload_code(path.read_text(encoding="utf-8")))


@app.command()
def set_code(
    ctx: typer.Context,
    code_hash: str = typer.Argument(..., help="Registered code hash to switch to"),
) -> None:
    """Migrate the store to a registered code hash."""
    store = _store(ctx)
    _run(lambda: store.set_code(code_hash))
    typer.secho(f"✅ Switched code hash to {store.get_code_hash()}", fg=typer.colors.GREEN)


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show record counts, next ids and the active code hash."""
    typer.echo(_store(ctx).get_stats().to_json())


if __name__ == "__main__":
    app()
