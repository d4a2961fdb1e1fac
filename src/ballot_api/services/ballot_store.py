"""Ballot store — insert-once, iterate-many access to accepted ballots.

Acceptance is a single ``INSERT ... ON CONFLICT DO NOTHING RETURNING id``
against the ``(election_id, nullifier)`` unique constraint, so two
concurrent submissions for the same voter can never both be stored.
"""

import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.lib.ballots import CastStatus, StoredBallot
from ballot_api.models.ballot import Ballot

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass(frozen=True)
class InsertOutcome:
    """Result of an insert-if-absent attempt."""

    status: CastStatus
    ballot_id: uuid.UUID | None = None

    @property
    def inserted(self) -> bool:
        return self.status is CastStatus.ACCEPTED


def _insert_for(session: AsyncSession) -> Any:
    dialect = session.get_bind().dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError:
        msg = f"Ballot store does not support the '{dialect}' dialect"
        raise RuntimeError(msg) from None


async def insert_if_absent(
    session: AsyncSession,
    *,
    election_id: uuid.UUID,
    nullifier: str,
    scheme: str,
    payload: str,
    vote_hash: str,
    accepted_at: datetime,
    voter_department: str | None = None,
    voter_cohort_year: int | None = None,
    voting_method: str = "web",
) -> InsertOutcome:
    """Store a ballot unless one already exists for this nullifier.

    The caller owns the transaction; commit after an accepted outcome.

    Args:
        session: Async database session.
        election_id: Election the ballot belongs to.
        nullifier: Per-voter-per-election fingerprint.
        scheme: Ballot scheme.
        payload: Codec-encoded payload.
        vote_hash: Integrity hash of the stored ballot.
        accepted_at: Acceptance timestamp.
        voter_department: Voter's department at acceptance time.
        voter_cohort_year: Voter's cohort year at acceptance time.
        voting_method: ``web`` or ``mobile``.

    Returns:
        ACCEPTED with the new ballot ID, or ALREADY_VOTED.
    """
    insert = _insert_for(session)
    ballot_id = uuid.uuid4()
    stmt = (
        insert(Ballot)
        .values(
            id=ballot_id,
            election_id=election_id,
            nullifier=nullifier,
            scheme=scheme,
            payload=payload,
            vote_hash=vote_hash,
            accepted_at=accepted_at,
            voter_department=voter_department,
            voter_cohort_year=voter_cohort_year,
            voting_method=voting_method,
        )
        .on_conflict_do_nothing(index_elements=["election_id", "nullifier"])
        .returning(Ballot.id)
    )
    result = await session.execute(stmt)
    inserted_id = result.scalar_one_or_none()
    if inserted_id is None:
        return InsertOutcome(status=CastStatus.ALREADY_VOTED)
    return InsertOutcome(status=CastStatus.ACCEPTED, ballot_id=inserted_id)


async def find_by_nullifier(
    session: AsyncSession,
    election_id: uuid.UUID,
    nullifier: str,
) -> Ballot | None:
    """Look up the accepted ballot for a nullifier, if any."""
    result = await session.execute(
        select(Ballot).where(Ballot.election_id == election_id, Ballot.nullifier == nullifier)
    )
    return result.scalar_one_or_none()


async def get_ballot(session: AsyncSession, ballot_id: uuid.UUID) -> Ballot | None:
    """Get a ballot by ID."""
    result = await session.execute(select(Ballot).where(Ballot.id == ballot_id))
    return result.scalar_one_or_none()


async def count_nullifier(session: AsyncSession, election_id: uuid.UUID, nullifier: str) -> int:
    """Number of stored ballots sharing a nullifier (1 for any healthy ballot)."""
    result = await session.execute(
        select(func.count(Ballot.id)).where(Ballot.election_id == election_id, Ballot.nullifier == nullifier)
    )
    return result.scalar_one()


def to_stored_ballot(ballot: Ballot) -> StoredBallot:
    """Convert an ORM ballot into the engine's read-only view."""
    return StoredBallot(
        id=ballot.id,
        election_id=str(ballot.election_id),
        scheme=ballot.scheme,
        payload=ballot.payload,
        accepted_at=ballot.accepted_at,
        department=ballot.voter_department,
        cohort_year=ballot.voter_cohort_year,
        voting_method=ballot.voting_method,
    )


async def iter_ballot_rows(
    session: AsyncSession,
    election_id: uuid.UUID,
    batch_size: int = 500,
) -> AsyncIterator[Ballot]:
    """Stream an election's ballot rows in acceptance order.

    Args:
        session: Async database session.
        election_id: The election UUID.
        batch_size: Rows fetched per round trip.

    Yields:
        Each accepted Ballot row.
    """
    stmt = (
        select(Ballot)
        .where(Ballot.election_id == election_id)
        .order_by(Ballot.accepted_at, Ballot.id)
        .execution_options(yield_per=batch_size)
    )
    result = await session.stream_scalars(stmt)
    async for ballot in result:
        yield ballot


async def iter_ballots(
    session: AsyncSession,
    election_id: uuid.UUID,
    batch_size: int = 500,
) -> AsyncIterator[StoredBallot]:
    """Stream an election's ballots as read-only engine views."""
    async for ballot in iter_ballot_rows(session, election_id, batch_size):
        yield to_stored_ballot(ballot)


async def list_ballots(
    session: AsyncSession,
    election_id: uuid.UUID,
    batch_size: int = 500,
) -> list[StoredBallot]:
    """Collect every ballot for an election into a list."""
    return [ballot async for ballot in iter_ballots(session, election_id, batch_size)]
