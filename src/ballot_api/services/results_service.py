"""Results service — pull-based tallies and live snapshots.

Results are recomputed from the ballot store on every request; nothing
derived is ever written back.
"""

import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.config import Settings
from ballot_api.lib.ballots import BallotCodec, CohortDimension, build_snapshot, determine_winner, tally
from ballot_api.schemas.results import (
    CohortCountResponse,
    LiveSnapshotResponse,
    TallyResponse,
    TallyResultResponse,
    TimelineBucketResponse,
    WinnerResponse,
)
from ballot_api.services import ballot_store, election_service
from ballot_api.services.election_service import current_phase, to_config


async def get_tally(
    session: AsyncSession,
    election_id: uuid.UUID,
    codec: BallotCodec,
    *,
    batch_size: int = 500,
    now: datetime | None = None,
) -> TallyResponse:
    """Tally every accepted ballot of an election.

    Args:
        session: Async database session.
        election_id: The election UUID.
        codec: Codec the ballots were stored with.
        batch_size: Rows fetched per round trip while streaming ballots.
        now: Reference time for the reported phase.

    Returns:
        TallyResponse with every candidate and the outright winner, if any.

    Raises:
        ElectionNotFoundError: If the election does not exist.
    """
    election = await election_service.get_election(session, election_id)
    ballots = await ballot_store.list_ballots(session, election.id, batch_size)
    outcome = tally(to_config(election), ballots, codec)
    winner = determine_winner(outcome.results)

    return TallyResponse(
        election_id=election.id,
        scheme=election.scheme,
        phase=current_phase(election, now).value,
        results=[TallyResultResponse.model_validate(r) for r in outcome.results],
        total_score=outcome.total_score,
        counted_ballots=outcome.counted_ballots,
        integrity_warnings=len(outcome.integrity_warnings),
        winner=WinnerResponse.model_validate(winner) if winner else None,
    )


async def get_snapshot(
    session: AsyncSession,
    election_id: uuid.UUID,
    codec: BallotCodec,
    settings: Settings,
    *,
    cohort_by: CohortDimension | str = CohortDimension.DEPARTMENT,
    now: datetime | None = None,
) -> LiveSnapshotResponse:
    """Build the live results dashboard for an election.

    Raises:
        ElectionNotFoundError: If the election does not exist.
        ValueError: If ``cohort_by`` is not a known voter attribute.
    """
    now = now or datetime.now(UTC)
    dimension = CohortDimension(cohort_by)
    election = await election_service.get_election(session, election_id)
    ballots = await ballot_store.list_ballots(session, election.id, settings.ballot_stream_batch_size)
    snapshot = build_snapshot(
        to_config(election),
        ballots,
        codec,
        now=now,
        cohort_by=dimension,
        bucket=timedelta(minutes=settings.timeline_bucket_minutes),
        window=timedelta(hours=settings.timeline_window_hours),
    )

    return LiveSnapshotResponse(
        election_id=election.id,
        scheme=election.scheme,
        phase=current_phase(election, now).value,
        results=[TallyResultResponse.model_validate(r) for r in snapshot.results],
        total_ballots=snapshot.total_ballots,
        turnout_percentage=snapshot.turnout_percentage,
        timeline=[TimelineBucketResponse.model_validate(b) for b in snapshot.timeline],
        cohort_by=snapshot.cohort_by,
        cohort_breakdown=[CohortCountResponse.model_validate(c) for c in snapshot.cohort_breakdown],
        integrity_warnings=snapshot.integrity_warnings,
        generated_at=snapshot.generated_at,
    )
