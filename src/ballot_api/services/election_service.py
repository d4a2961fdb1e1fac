"""Election service — election configuration source and lifecycle rules.

Creates and updates elections, derives their phase, and converts the ORM
model into the immutable configuration the ballot engine works with.
"""

import uuid
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.config import Settings
from ballot_api.lib.ballots import (
    BallotScheme,
    CandidateRef,
    ElectionConfig,
    ElectionPhase,
    election_phase,
    ensure_utc,
    is_locked,
    validate_windows,
)
from ballot_api.models.election import Candidate, Election
from ballot_api.schemas.election import (
    CandidateResponse,
    ElectionCreateRequest,
    ElectionDetailResponse,
    ElectionSummary,
    ElectionUpdateRequest,
)


class ElectionNotFoundError(Exception):
    """Raised when the requested election does not exist."""

    def __init__(self, election_id: uuid.UUID | str) -> None:
        self.election_id = election_id
        super().__init__(f"Election {election_id} not found")


class ElectionConfigError(ValueError):
    """Raised when an election's configuration is inconsistent."""


class ElectionLockedError(Exception):
    """Raised when modifying an election after voting has started."""


_WINDOW_FIELDS = ("registration_start", "registration_end", "voting_start", "voting_end")
_NULLABLE_FIELDS = frozenset({"description"})


def current_phase(election: Election, now: datetime | None = None) -> ElectionPhase:
    """Derive the election's phase at ``now`` (defaults to the current time)."""
    return election_phase(
        now or datetime.now(UTC),
        election.registration_start,
        election.registration_end,
        election.voting_start,
        election.voting_end,
    )


def to_config(election: Election) -> ElectionConfig:
    """Build the engine-facing configuration for an election."""
    return ElectionConfig(
        id=str(election.id),
        scheme=BallotScheme(election.scheme),
        candidates=tuple(CandidateRef(id=str(c.id), name=c.name) for c in election.candidates),
        max_rankings=election.max_rankings,
        credit_budget=election.credit_budget,
        estimated_eligible_voters=election.estimated_eligible_voters,
    )


def _check_windows(
    registration_start: datetime,
    registration_end: datetime,
    voting_start: datetime,
    voting_end: datetime,
) -> None:
    errors = validate_windows(registration_start, registration_end, voting_start, voting_end)
    if errors:
        msg = "; ".join(errors)
        raise ElectionConfigError(msg)


async def create_election(
    session: AsyncSession,
    request: ElectionCreateRequest,
    settings: Settings,
) -> Election:
    """Create an election with its candidates.

    Args:
        session: Async database session.
        request: Election creation request.
        settings: Application settings supplying scheme defaults.

    Returns:
        The created Election instance.

    Raises:
        ElectionConfigError: If the windows are out of order.
    """
    _check_windows(
        request.registration_start,
        request.registration_end,
        request.voting_start,
        request.voting_end,
    )

    election = Election(
        title=request.title,
        description=request.description,
        scheme=request.scheme,
        max_rankings=request.max_rankings or settings.default_max_rankings,
        credit_budget=request.credit_budget or settings.default_credit_budget,
        estimated_eligible_voters=request.estimated_eligible_voters or settings.default_estimated_voters,
        eligible_departments=list(request.eligible_departments),
        eligible_years=list(request.eligible_years),
        registration_start=ensure_utc(request.registration_start),
        registration_end=ensure_utc(request.registration_end),
        voting_start=ensure_utc(request.voting_start),
        voting_end=ensure_utc(request.voting_end),
        candidates=[
            Candidate(
                name=candidate.name,
                description=candidate.description,
                department=candidate.department,
                position=index,
            )
            for index, candidate in enumerate(request.candidates)
        ],
    )
    session.add(election)
    await session.commit()
    election = await _reload(session, election.id)
    logger.info("Created {} election {} with {} candidates", election.scheme, election.id, len(election.candidates))
    return election


async def _reload(session: AsyncSession, election_id: uuid.UUID) -> Election:
    # Pick up server-side defaults and the candidate collection after a commit.
    result = await session.execute(
        select(Election).where(Election.id == election_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_election_by_id(
    session: AsyncSession,
    election_id: uuid.UUID,
) -> Election | None:
    """Get an election by ID with its candidates loaded.

    Returns:
        Election instance or None if not found.
    """
    result = await session.execute(select(Election).where(Election.id == election_id))
    return result.scalar_one_or_none()


async def get_election(session: AsyncSession, election_id: uuid.UUID) -> Election:
    """Get an election by ID.

    Raises:
        ElectionNotFoundError: If no election has this ID.
    """
    election = await get_election_by_id(session, election_id)
    if election is None:
        raise ElectionNotFoundError(election_id)
    return election


async def list_elections(
    session: AsyncSession,
    *,
    scheme: str | None = None,
    phase: ElectionPhase | None = None,
    now: datetime | None = None,
) -> tuple[list[ElectionSummary], int]:
    """List elections, newest voting window first.

    Args:
        session: Async database session.
        scheme: Only elections using this scheme.
        phase: Only elections currently in this phase.
        now: Reference time for phase derivation.

    Returns:
        Tuple of (election summaries, total count).
    """
    now = now or datetime.now(UTC)
    query = select(Election).order_by(Election.voting_start.desc())
    if scheme:
        query = query.where(Election.scheme == scheme)
    result = await session.execute(query)

    items = []
    for election in result.scalars().all():
        election_phase_now = current_phase(election, now)
        if phase is not None and election_phase_now != phase:
            continue
        items.append(
            ElectionSummary(
                id=election.id,
                title=election.title,
                scheme=election.scheme,
                phase=election_phase_now.value,
                voting_start=election.voting_start,
                voting_end=election.voting_end,
            )
        )
    return items, len(items)


async def update_election(
    session: AsyncSession,
    election_id: uuid.UUID,
    request: ElectionUpdateRequest,
    now: datetime | None = None,
) -> Election:
    """Update an election that has not started voting yet.

    Args:
        session: Async database session.
        election_id: The election UUID.
        request: Partial update fields.
        now: Reference time for the lock check.

    Returns:
        The updated Election instance.

    Raises:
        ElectionNotFoundError: If the election does not exist.
        ElectionLockedError: If voting has started or finished.
        ElectionConfigError: If the resulting windows are out of order.
    """
    election = await get_election(session, election_id)
    phase = current_phase(election, now)
    if is_locked(phase):
        msg = f"Election {election_id} cannot be modified during the {phase} phase"
        raise ElectionLockedError(msg)

    update_data = request.model_dump(exclude_unset=True)
    for field in _WINDOW_FIELDS:
        if update_data.get(field) is not None:
            update_data[field] = ensure_utc(update_data[field])
    _check_windows(**{field: update_data.get(field) or getattr(election, field) for field in _WINDOW_FIELDS})

    for field, value in update_data.items():
        if value is None and field not in _NULLABLE_FIELDS:
            continue
        setattr(election, field, value)

    await session.commit()
    election = await _reload(session, election.id)
    logger.info("Updated election {} fields: {}", election.id, sorted(update_data))
    return election


def build_detail_response(election: Election, now: datetime | None = None) -> ElectionDetailResponse:
    """Build an ElectionDetailResponse from an Election model instance."""
    return ElectionDetailResponse(
        id=election.id,
        title=election.title,
        description=election.description,
        scheme=election.scheme,
        phase=current_phase(election, now).value,
        candidates=[CandidateResponse.model_validate(c) for c in election.candidates],
        max_rankings=election.max_rankings,
        credit_budget=election.credit_budget,
        estimated_eligible_voters=election.estimated_eligible_voters,
        eligible_departments=list(election.eligible_departments or []),
        eligible_years=list(election.eligible_years or []),
        registration_start=election.registration_start,
        registration_end=election.registration_end,
        voting_start=election.voting_start,
        voting_end=election.voting_end,
        created_at=election.created_at,
        updated_at=election.updated_at,
    )
