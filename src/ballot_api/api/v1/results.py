"""Results API endpoints.

GET /elections/{id}/results — tally recomputed from stored ballots
GET /elections/{id}/results/live — live dashboard snapshot
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.config import Settings, get_settings
from ballot_api.core.dependencies import get_async_session, get_ballot_codec
from ballot_api.lib.ballots import BallotCodec, CohortDimension
from ballot_api.schemas.results import LiveSnapshotResponse, TallyResponse
from ballot_api.services import results_service
from ballot_api.services.election_service import ElectionNotFoundError

results_router = APIRouter(prefix="/elections", tags=["results"])


@results_router.get("/{election_id}/results", response_model=TallyResponse)
async def get_results(
    election_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    codec: Annotated[BallotCodec, Depends(get_ballot_codec)],
) -> TallyResponse:
    """Tally every accepted ballot for an election."""
    try:
        return await results_service.get_tally(
            session, election_id, codec, batch_size=settings.ballot_stream_batch_size
        )
    except ElectionNotFoundError as e:
        raise HTTPException(status_code=404, detail="Election not found.") from e


@results_router.get("/{election_id}/results/live", response_model=LiveSnapshotResponse)
async def get_live_results(
    election_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    codec: Annotated[BallotCodec, Depends(get_ballot_codec)],
    cohort_by: CohortDimension = Query(
        default=CohortDimension.DEPARTMENT, description="Voter attribute for the cohort breakdown"
    ),
) -> LiveSnapshotResponse:
    """Live turnout, timeline, and cohort breakdown alongside current results."""
    try:
        return await results_service.get_snapshot(session, election_id, codec, settings, cohort_by=cohort_by)
    except ElectionNotFoundError as e:
        raise HTTPException(status_code=404, detail="Election not found.") from e
