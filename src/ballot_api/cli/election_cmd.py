"""CLI commands for election setup and results.

Creates elections from JSON config files and prints tallies and live
snapshots straight from the ballot store.
"""

import asyncio
import json
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from pydantic import ValidationError

if TYPE_CHECKING:
    from ballot_api.schemas.election import ElectionCreateRequest

election_app = typer.Typer()


def _parse_election_id(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        typer.echo(f"Error: '{value}' is not a valid election ID", err=True)
        raise typer.Exit(code=1) from None


@election_app.command("create")
def create(
    file: Annotated[
        Path,
        typer.Option("--file", "-f", exists=True, dir_okay=False, readable=True, help="Election config JSON file"),
    ],
) -> None:
    """Create an election from a JSON config file."""
    from ballot_api.schemas.election import ElectionCreateRequest

    try:
        request = ElectionCreateRequest.model_validate(json.loads(file.read_text(encoding="utf-8")))
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {file} is not valid JSON: {e}", err=True)
        raise typer.Exit(code=1) from e
    except ValidationError as e:
        typer.echo(f"Error: invalid election config:\n{e}", err=True)
        raise typer.Exit(code=1) from e

    asyncio.run(_create_impl(request))


async def _create_impl(request: "ElectionCreateRequest") -> None:
    """Async implementation of the create command."""
    from ballot_api.core.config import get_settings
    from ballot_api.core.database import dispose_engine, get_session_factory, init_engine
    from ballot_api.services import election_service
    from ballot_api.services.election_service import ElectionConfigError

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            try:
                election = await election_service.create_election(session, request, settings)
            except ElectionConfigError as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(code=1) from e
            typer.echo(f"Created {election.scheme} election {election.id}: {election.title}")
            for candidate in election.candidates:
                typer.echo(f"  {candidate.position + 1}. {candidate.name} ({candidate.id})")
    finally:
        await dispose_engine()


@election_app.command("tally")
def tally(
    election_id: Annotated[str, typer.Argument(help="Election UUID")],
    as_json: Annotated[bool, typer.Option("--json", help="Print the tally as JSON")] = False,
) -> None:
    """Tally an election from its stored ballots."""
    asyncio.run(_tally_impl(_parse_election_id(election_id), as_json))


async def _tally_impl(election_id: uuid.UUID, as_json: bool) -> None:
    """Async implementation of the tally command."""
    from ballot_api.core.config import get_settings
    from ballot_api.core.database import dispose_engine, get_session_factory, init_engine
    from ballot_api.lib.ballots import get_codec
    from ballot_api.services import results_service
    from ballot_api.services.election_service import ElectionNotFoundError

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            try:
                response = await results_service.get_tally(
                    session,
                    election_id,
                    get_codec(settings.ballot_codec),
                    batch_size=settings.ballot_stream_batch_size,
                )
            except ElectionNotFoundError as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()

    if as_json:
        typer.echo(response.model_dump_json(indent=2))
        return

    typer.echo(f"Election {response.election_id} ({response.scheme}, {response.phase})")
    for line in response.results:
        typer.echo(f"  {line.candidate_name:<30} {line.raw_score:>8} {line.percentage:>7.2f}%")
    typer.echo(f"Counted ballots: {response.counted_ballots}  Total score: {response.total_score}")
    if response.integrity_warnings:
        typer.echo(f"Integrity warnings: {response.integrity_warnings} ballot(s) skipped")
    if response.winner:
        typer.echo(f"Leader: {response.winner.candidate_name} (margin {response.winner.margin})")
    else:
        typer.echo("Leader: none (no votes or tied)")


@election_app.command("snapshot")
def snapshot(
    election_id: Annotated[str, typer.Argument(help="Election UUID")],
    cohort_by: Annotated[
        str,
        typer.Option("--cohort-by", help="Cohort breakdown attribute: department, cohort_year or voting_method"),
    ] = "department",
) -> None:
    """Print the live results snapshot of an election as JSON."""
    from ballot_api.lib.ballots import CohortDimension

    if cohort_by not in {d.value for d in CohortDimension}:
        typer.echo(
            f"Error: --cohort-by must be department, cohort_year or voting_method, got '{cohort_by}'",
            err=True,
        )
        raise typer.Exit(code=1)
    asyncio.run(_snapshot_impl(_parse_election_id(election_id), cohort_by))


async def _snapshot_impl(election_id: uuid.UUID, cohort_by: str) -> None:
    """Async implementation of the snapshot command."""
    from ballot_api.core.config import get_settings
    from ballot_api.core.database import dispose_engine, get_session_factory, init_engine
    from ballot_api.lib.ballots import get_codec
    from ballot_api.services import results_service
    from ballot_api.services.election_service import ElectionNotFoundError

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            try:
                response = await results_service.get_snapshot(
                    session,
                    election_id,
                    get_codec(settings.ballot_codec),
                    settings,
                    cohort_by=cohort_by,
                )
            except ElectionNotFoundError as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()

    typer.echo(response.model_dump_json(indent=2))
