"""Ballot service — cast, look up, verify, and export ballots.

Casting runs the lifecycle and eligibility gates, validates the ballot
against its scheme, derives the voter's nullifier, and stores the encoded
ballot with a single atomic insert.  The ledger is told about accepted
ballots in the background; its failures never affect the outcome.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.background import BackgroundTaskRunner, task_runner
from ballot_api.core.config import Settings
from ballot_api.lib.ballots import (
    BallotCodec,
    CastStatus,
    DecodeFailure,
    ElectionPhase,
    StructuralInvalidError,
    Violation,
    ViolationCode,
    classify_violations,
    compute_vote_hash,
    decode_ballot,
    derive_nullifier,
    dump_payload,
    is_eligible,
    parse_payload,
    validate_ballot,
    verify_vote_hash,
)
from ballot_api.lib.ledger import BaseLedger, LedgerEntry, LedgerError
from ballot_api.models.ballot import Ballot
from ballot_api.schemas.ballot import (
    AnonymizedVoterMetadata,
    BallotCastRequest,
    BallotExportResponse,
    BallotIntegrity,
    BallotVerificationResponse,
    ExportedBallot,
    ExportedElection,
)
from ballot_api.services import ballot_store, election_service
from ballot_api.services.election_service import current_phase, to_config


class VotingClosedError(Exception):
    """Raised when a ballot arrives outside the voting window."""


class IneligibleVoterError(Exception):
    """Raised when the voter's department or cohort year is not eligible."""


class BallotNotFoundError(Exception):
    """Raised when a ballot ID does not exist."""


class ExportNotReadyError(ValueError):
    """Raised when exporting ballots before the election has completed."""


@dataclass(frozen=True)
class CastResult:
    """Outcome of casting one ballot."""

    status: CastStatus
    election_id: uuid.UUID
    ballot_id: uuid.UUID | None = None
    vote_hash: str | None = None
    accepted_at: datetime | None = None


async def _notify_ledger(ledger: BaseLedger, entry: LedgerEntry) -> None:
    try:
        receipt = await ledger.record_ballot(entry)
    except LedgerError as exc:
        logger.warning("Ledger {} did not record ballot {}: {}", exc.ledger_name, entry.ballot_id, exc.message)
        return
    logger.debug("Ledger {} recorded ballot {} (ref={})", receipt.ledger_name, entry.ballot_id, receipt.reference)


async def cast_ballot(
    session: AsyncSession,
    election_id: uuid.UUID,
    request: BallotCastRequest,
    *,
    settings: Settings,
    codec: BallotCodec,
    ledger: BaseLedger,
    runner: BackgroundTaskRunner = task_runner,
    now: datetime | None = None,
) -> CastResult:
    """Cast one voter's ballot.

    A repeat submission is a normal ``ALREADY_VOTED`` outcome, not an error.

    Args:
        session: Async database session.
        election_id: Target election.
        request: The submission, including the voter ID and raw payload.
        settings: Application settings (nullifier secret).
        codec: Codec used to encode the stored payload.
        ledger: Ledger notified after acceptance.
        runner: Background runner for the ledger call.
        now: Acceptance time (defaults to the current time).

    Returns:
        CastResult with ACCEPTED and the new ballot, or ALREADY_VOTED.

    Raises:
        ElectionNotFoundError: If the election does not exist.
        VotingClosedError: If the election is not in its voting phase.
        IneligibleVoterError: If the voter is outside the eligible cohorts.
        StructuralInvalidError: If the ballot breaks its scheme's rules.
        UnknownReferenceError: If the ballot names an unknown scheme or candidate.
    """
    now = now or datetime.now(UTC)
    election = await election_service.get_election(session, election_id)

    phase = current_phase(election, now)
    if phase is not ElectionPhase.VOTING:
        msg = f"Election is not in voting phase (currently {phase})"
        raise VotingClosedError(msg)

    if not is_eligible(
        election.eligible_departments or [],
        election.eligible_years or [],
        request.department,
        request.cohort_year,
    ):
        msg = "You are not eligible to vote in this election"
        raise IneligibleVoterError(msg)

    config = to_config(election)
    violations = validate_ballot(request.scheme, request.payload, config)
    if violations:
        logger.info("Rejected ballot for election {}: {} violation(s)", election.id, len(violations))
        raise classify_violations(violations)
    try:
        payload = parse_payload(request.payload, config.scheme)
    except DecodeFailure as exc:
        raise StructuralInvalidError([Violation(ViolationCode.INVALID_VALUE, str(exc))]) from exc

    nullifier = derive_nullifier(request.voter_id, config.id, settings.nullifier_secret)
    encoded = codec.encode(dump_payload(payload))
    vote_hash = compute_vote_hash(config.id, nullifier, encoded)

    try:
        outcome = await ballot_store.insert_if_absent(
            session,
            election_id=election.id,
            nullifier=nullifier,
            scheme=config.scheme.value,
            payload=encoded,
            vote_hash=vote_hash,
            accepted_at=now,
            voter_department=request.department,
            voter_cohort_year=request.cohort_year,
            voting_method=request.voting_method,
        )
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise

    if not outcome.inserted:
        logger.info("Duplicate ballot for election {} (nullifier {})", election.id, nullifier[:12])
        return CastResult(status=CastStatus.ALREADY_VOTED, election_id=election.id)

    logger.bind(json_output=True, event="ballot_accepted", vote_hash=vote_hash).info(
        "Accepted {} ballot {} for election {}", config.scheme, outcome.ballot_id, election.id
    )
    entry = LedgerEntry(
        ballot_id=str(outcome.ballot_id),
        election_id=config.id,
        vote_hash=vote_hash,
        nullifier=nullifier,
    )
    runner.submit_task(_notify_ledger(ledger, entry), name="ledger")
    return CastResult(
        status=CastStatus.ACCEPTED,
        election_id=election.id,
        ballot_id=outcome.ballot_id,
        vote_hash=vote_hash,
        accepted_at=now,
    )


async def get_voter_ballot(
    session: AsyncSession,
    election_id: uuid.UUID,
    voter_id: str,
    settings: Settings,
) -> Ballot | None:
    """Return the voter's accepted ballot for an election, if any.

    Raises:
        ElectionNotFoundError: If the election does not exist.
    """
    election = await election_service.get_election(session, election_id)
    nullifier = derive_nullifier(voter_id, str(election.id), settings.nullifier_secret)
    return await ballot_store.find_by_nullifier(session, election.id, nullifier)


async def verify_ballot(
    session: AsyncSession,
    ballot_id: uuid.UUID,
    codec: BallotCodec,
) -> BallotVerificationResponse:
    """Run integrity checks against one stored ballot.

    Checks that the vote hash still matches the stored payload, that the
    payload decodes for the election's scheme, and that no other ballot
    shares its nullifier.

    Raises:
        BallotNotFoundError: If the ballot does not exist.
    """
    ballot = await ballot_store.get_ballot(session, ballot_id)
    if ballot is None:
        msg = f"Ballot {ballot_id} not found"
        raise BallotNotFoundError(msg)
    election = await election_service.get_election(session, ballot.election_id)

    hash_valid = verify_vote_hash(str(ballot.election_id), ballot.nullifier, ballot.payload, ballot.vote_hash)
    try:
        decode_ballot(ballot_store.to_stored_ballot(ballot), to_config(election), codec)
        decodable = True
    except DecodeFailure as exc:
        logger.warning("Ballot {} failed to decode during verification: {}", ballot.id, exc)
        decodable = False
    sharing = await ballot_store.count_nullifier(session, ballot.election_id, ballot.nullifier)

    return BallotVerificationResponse(
        ballot_id=ballot.id,
        election_id=ballot.election_id,
        election_title=election.title,
        scheme=ballot.scheme,
        vote_hash=ballot.vote_hash,
        nullifier=ballot.nullifier,
        accepted_at=ballot.accepted_at,
        integrity=BallotIntegrity(
            hash_valid=hash_valid,
            payload_decodable=decodable,
            unique_nullifier=sharing == 1,
        ),
    )


async def export_ballots(
    session: AsyncSession,
    election_id: uuid.UUID,
    *,
    batch_size: int = 500,
    now: datetime | None = None,
) -> BallotExportResponse:
    """Build an anonymized audit export of a completed election.

    Payloads are left out; only integrity material and cohort metadata are
    exported.

    Raises:
        ElectionNotFoundError: If the election does not exist.
        ExportNotReadyError: If the election has not completed yet.
    """
    now = now or datetime.now(UTC)
    election = await election_service.get_election(session, election_id)
    if current_phase(election, now) is not ElectionPhase.COMPLETED:
        msg = "Can only export ballots after the election is completed"
        raise ExportNotReadyError(msg)

    ballots = [ballot async for ballot in ballot_store.iter_ballot_rows(session, election.id, batch_size)]
    return BallotExportResponse(
        election=ExportedElection(
            id=election.id,
            title=election.title,
            scheme=election.scheme,
            voting_end=election.voting_end,
        ),
        ballots=[
            ExportedBallot(
                ballot_id=ballot.id,
                vote_hash=ballot.vote_hash,
                nullifier=ballot.nullifier,
                scheme=ballot.scheme,
                accepted_at=ballot.accepted_at,
                metadata=AnonymizedVoterMetadata(
                    department=ballot.voter_department,
                    cohort_year=ballot.voter_cohort_year,
                    voting_method=ballot.voting_method,
                ),
            )
            for ballot in ballots
        ],
        exported_at=now,
    )
