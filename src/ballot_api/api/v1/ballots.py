"""Ballot API endpoints.

POST /elections/{id}/ballots — cast a ballot
GET /elections/{id}/ballots/status — has this voter already voted
GET /elections/{id}/ballots/export — anonymized audit export (completed elections)
GET /ballots/{ballot_id}/verification — integrity check of a stored ballot
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.background import BackgroundTaskRunner
from ballot_api.core.config import Settings, get_settings
from ballot_api.core.dependencies import get_async_session, get_ballot_codec, get_ledger, get_task_runner
from ballot_api.lib.ballots import (
    BallotCodec,
    BallotRejectedError,
    CastStatus,
    StructuralInvalidError,
)
from ballot_api.lib.ledger import BaseLedger
from ballot_api.schemas.ballot import (
    BallotCastRequest,
    BallotCastResponse,
    BallotExportResponse,
    BallotRejectedResponse,
    BallotStatusResponse,
    BallotVerificationResponse,
    ViolationDetail,
)
from ballot_api.services import ballot_service
from ballot_api.services.ballot_service import (
    BallotNotFoundError,
    ExportNotReadyError,
    IneligibleVoterError,
    VotingClosedError,
)
from ballot_api.services.election_service import ElectionNotFoundError

election_ballots_router = APIRouter(prefix="/elections", tags=["ballots"])
ballots_router = APIRouter(prefix="/ballots", tags=["ballots"])


def _rejection_response(exc: BallotRejectedError) -> JSONResponse:
    status_code = 422 if isinstance(exc, StructuralInvalidError) else 400
    body = BallotRejectedResponse(
        detail="Invalid ballot structure" if status_code == 422 else "Ballot references an unknown scheme or candidate",
        violations=[ViolationDetail(code=v.code.value, message=v.message) for v in exc.violations],
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@election_ballots_router.post(
    "/{election_id}/ballots",
    response_model=BallotCastResponse,
    status_code=201,
    responses={
        400: {"model": BallotRejectedResponse, "description": "Unknown scheme or candidate"},
        403: {"description": "Voter not eligible"},
        404: {"description": "Election not found"},
        409: {"description": "Already voted, or voting is closed"},
        422: {"model": BallotRejectedResponse, "description": "Structurally invalid ballot"},
    },
)
async def cast_ballot(
    election_id: uuid.UUID,
    request: BallotCastRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    codec: Annotated[BallotCodec, Depends(get_ballot_codec)],
    ledger: Annotated[BaseLedger, Depends(get_ledger)],
    runner: Annotated[BackgroundTaskRunner, Depends(get_task_runner)],
) -> BallotCastResponse | JSONResponse:
    """Cast a ballot.  A repeat submission by the same voter returns 409."""
    try:
        result = await ballot_service.cast_ballot(
            session,
            election_id,
            request,
            settings=settings,
            codec=codec,
            ledger=ledger,
            runner=runner,
        )
    except ElectionNotFoundError as e:
        raise HTTPException(status_code=404, detail="Election not found.") from e
    except VotingClosedError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except IneligibleVoterError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except BallotRejectedError as e:
        return _rejection_response(e)

    if result.status is CastStatus.ALREADY_VOTED:
        body = BallotCastResponse(
            status=result.status.value,
            election_id=result.election_id,
            message="You have already voted in this election",
        )
        return JSONResponse(status_code=409, content=body.model_dump(mode="json"))

    return BallotCastResponse(
        status=result.status.value,
        election_id=result.election_id,
        ballot_id=result.ballot_id,
        vote_hash=result.vote_hash,
        accepted_at=result.accepted_at,
        message="Vote cast successfully",
    )


@election_ballots_router.get("/{election_id}/ballots/status", response_model=BallotStatusResponse)
async def get_ballot_status(
    election_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    voter_id: str = Query(min_length=1, max_length=200, description="Voter identifier"),
) -> BallotStatusResponse:
    """Report whether the voter already has an accepted ballot."""
    try:
        ballot = await ballot_service.get_voter_ballot(session, election_id, voter_id, settings)
    except ElectionNotFoundError as e:
        raise HTTPException(status_code=404, detail="Election not found.") from e
    return BallotStatusResponse(
        election_id=election_id,
        has_voted=ballot is not None,
        ballot_id=ballot.id if ballot else None,
        accepted_at=ballot.accepted_at if ballot else None,
    )


@election_ballots_router.get("/{election_id}/ballots/export", response_model=BallotExportResponse)
async def export_ballots(
    election_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> BallotExportResponse:
    """Export anonymized ballot records once the election has completed."""
    try:
        return await ballot_service.export_ballots(
            session, election_id, batch_size=settings.ballot_stream_batch_size
        )
    except ElectionNotFoundError as e:
        raise HTTPException(status_code=404, detail="Election not found.") from e
    except ExportNotReadyError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@ballots_router.get("/{ballot_id}/verification", response_model=BallotVerificationResponse)
async def verify_ballot(
    ballot_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    codec: Annotated[BallotCodec, Depends(get_ballot_codec)],
) -> BallotVerificationResponse:
    """Check the integrity of a stored ballot."""
    try:
        return await ballot_service.verify_ballot(session, ballot_id, codec)
    except BallotNotFoundError as e:
        raise HTTPException(status_code=404, detail="Ballot not found.") from e
