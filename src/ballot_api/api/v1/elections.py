"""Election API endpoints.

GET /elections — list elections with their derived phase
POST /elections — create election
GET /elections/{id} — election detail
PATCH /elections/{id} — update election before voting starts
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.config import Settings, get_settings
from ballot_api.core.dependencies import get_async_session
from ballot_api.lib.ballots import ElectionPhase
from ballot_api.schemas.election import (
    ElectionCreateRequest,
    ElectionDetailResponse,
    ElectionListResponse,
    ElectionUpdateRequest,
    SchemeName,
)
from ballot_api.services import election_service
from ballot_api.services.election_service import ElectionConfigError, ElectionLockedError, ElectionNotFoundError

elections_router = APIRouter(prefix="/elections", tags=["elections"])


@elections_router.get("", response_model=ElectionListResponse)
async def list_elections(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    scheme: SchemeName | None = Query(default=None, description="Filter by ballot scheme"),
    phase: ElectionPhase | None = Query(default=None, description="Filter by current phase"),
) -> ElectionListResponse:
    """List elections, newest voting window first."""
    items, total = await election_service.list_elections(session, scheme=scheme, phase=phase)
    return ElectionListResponse(items=items, total=total)


@elections_router.post("", response_model=ElectionDetailResponse, status_code=201)
async def create_election(
    request: ElectionCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ElectionDetailResponse:
    """Create an election with its candidates."""
    try:
        election = await election_service.create_election(session, request, settings)
    except ElectionConfigError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return election_service.build_detail_response(election)


@elections_router.get("/{election_id}", response_model=ElectionDetailResponse)
async def get_election(
    election_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> ElectionDetailResponse:
    """Get election detail by ID."""
    election = await election_service.get_election_by_id(session, election_id)
    if election is None:
        raise HTTPException(status_code=404, detail="Election not found.")
    return election_service.build_detail_response(election)


@elections_router.patch("/{election_id}", response_model=ElectionDetailResponse)
async def update_election(
    election_id: uuid.UUID,
    request: ElectionUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> ElectionDetailResponse:
    """Update an election; rejected once voting has started."""
    try:
        election = await election_service.update_election(session, election_id, request)
    except ElectionNotFoundError as e:
        raise HTTPException(status_code=404, detail="Election not found.") from e
    except ElectionLockedError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ElectionConfigError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return election_service.build_detail_response(election)
