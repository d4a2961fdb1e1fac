"""Unit tests for the ballot service module."""

import asyncio
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from ballot_api.core.background import InProcessTaskRunner
from ballot_api.lib.ballots import (
    Base64JsonCodec,
    CastStatus,
    StructuralInvalidError,
    UnknownReferenceError,
    ViolationCode,
    derive_nullifier,
)
from ballot_api.lib.ledger import LedgerEntry, LedgerError, LedgerReceipt
from ballot_api.models import Base
from ballot_api.models.ballot import Ballot
from ballot_api.schemas.ballot import BallotCastRequest
from ballot_api.services.ballot_service import (
    BallotNotFoundError,
    ExportNotReadyError,
    IneligibleVoterError,
    VotingClosedError,
    cast_ballot,
    export_ballots,
    get_voter_ballot,
    verify_ballot,
)
from ballot_api.services.election_service import ElectionNotFoundError

CODEC = Base64JsonCodec()

# --- Helpers ---


def _make_ledger() -> AsyncMock:
    ledger = AsyncMock()
    ledger.record_ballot.return_value = LedgerReceipt(ledger_name="mock", reference="ref-1")
    return ledger


def _make_request(candidate_id: object, voter_id: str = "voter-1", **overrides: object) -> BallotCastRequest:
    fields: dict[str, object] = {
        "voter_id": voter_id,
        "scheme": "single_choice",
        "payload": {"candidate_id": candidate_id},
        "department": "CS",
        "cohort_year": 2,
    }
    fields.update(overrides)
    return BallotCastRequest(**fields)


async def _cast(session, settings, election, request, *, ledger=None, runner=None, now=None):
    runner = runner or InProcessTaskRunner()
    result = await cast_ballot(
        session,
        election.id,
        request,
        settings=settings,
        codec=CODEC,
        ledger=ledger or _make_ledger(),
        runner=runner,
        now=now,
    )
    if isinstance(runner, InProcessTaskRunner):
        await runner.drain()
    return result


def _candidate_id(election, index: int = 0) -> str:
    return str(election.candidates[index].id)


# --- Tests ---


class TestCastBallot:
    """Tests for cast_ballot."""

    @pytest.mark.asyncio
    async def test_accepts_valid_ballot(self, async_session, settings, election_factory) -> None:
        election = await election_factory()
        ledger = _make_ledger()

        result = await _cast(async_session, settings, election, _make_request(_candidate_id(election)), ledger=ledger)

        assert result.status is CastStatus.ACCEPTED
        assert result.ballot_id is not None
        assert len(result.vote_hash) == 64

        stored = (await async_session.execute(select(Ballot))).scalar_one()
        assert stored.id == result.ballot_id
        assert stored.nullifier == derive_nullifier("voter-1", str(election.id), settings.nullifier_secret)
        assert "voter-1" not in stored.payload
        assert stored.voter_department == "CS"
        assert stored.voter_cohort_year == 2
        assert CODEC.decode(stored.payload) == {"scheme": "single_choice", "candidate_id": _candidate_id(election)}

        entry: LedgerEntry = ledger.record_ballot.await_args.args[0]
        assert entry.ballot_id == str(result.ballot_id)
        assert entry.vote_hash == result.vote_hash

    @pytest.mark.asyncio
    async def test_second_ballot_from_same_voter(self, async_session, settings, election_factory) -> None:
        election = await election_factory()
        first = await _cast(async_session, settings, election, _make_request(_candidate_id(election, 0)))
        ledger = _make_ledger()

        second = await _cast(
            async_session, settings, election, _make_request(_candidate_id(election, 1)), ledger=ledger
        )

        assert first.status is CastStatus.ACCEPTED
        assert second.status is CastStatus.ALREADY_VOTED
        assert second.ballot_id is None
        ledger.record_ballot.assert_not_awaited()
        count = (await async_session.execute(select(func.count(Ballot.id)))).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_same_voter_other_election(self, async_session, settings, election_factory) -> None:
        first_election = await election_factory()
        second_election = await election_factory()

        first = await _cast(async_session, settings, first_election, _make_request(_candidate_id(first_election)))
        second = await _cast(async_session, settings, second_election, _make_request(_candidate_id(second_election)))

        assert first.status is CastStatus.ACCEPTED
        assert second.status is CastStatus.ACCEPTED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("phase", ["upcoming", "registration", "waiting", "completed"])
    async def test_voting_closed(self, async_session, settings, election_factory, phase: str) -> None:
        election = await election_factory(phase=phase)

        with pytest.raises(VotingClosedError, match=f"currently {phase}"):
            await _cast(async_session, settings, election, _make_request(_candidate_id(election)))

    @pytest.mark.asyncio
    async def test_voting_end_is_exclusive(self, async_session, settings, election_factory) -> None:
        election = await election_factory()

        with pytest.raises(VotingClosedError):
            await _cast(
                async_session,
                settings,
                election,
                _make_request(_candidate_id(election)),
                now=election.voting_end,
            )

    @pytest.mark.asyncio
    async def test_ineligible_department(self, async_session, settings, election_factory) -> None:
        election = await election_factory(eligible_departments=["EE"])

        with pytest.raises(IneligibleVoterError):
            await _cast(async_session, settings, election, _make_request(_candidate_id(election)))

    @pytest.mark.asyncio
    async def test_eligible_year(self, async_session, settings, election_factory) -> None:
        election = await election_factory(eligible_years=[2, 3])

        result = await _cast(async_session, settings, election, _make_request(_candidate_id(election)))
        assert result.status is CastStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_unknown_candidate(self, async_session, settings, election_factory) -> None:
        election = await election_factory()

        with pytest.raises(UnknownReferenceError) as exc_info:
            await _cast(async_session, settings, election, _make_request(str(uuid.uuid4())))

        assert [v.code for v in exc_info.value.violations] == [ViolationCode.UNKNOWN_CANDIDATE]
        assert (await async_session.execute(select(func.count(Ballot.id)))).scalar_one() == 0

    @pytest.mark.asyncio
    async def test_structurally_invalid(self, async_session, settings, election_factory) -> None:
        election = await election_factory("ranked_choice", ("A", "B", "C", "D"))
        ids = [str(c.id) for c in election.candidates]
        request = _make_request(
            None,
            scheme="ranked_choice",
            payload={"rankings": [{"candidate_id": cid, "rank": rank} for rank, cid in enumerate(ids, start=1)]},
        )

        with pytest.raises(StructuralInvalidError) as exc_info:
            await _cast(async_session, settings, election, request)

        assert ViolationCode.TOO_MANY_RANKINGS in [v.code for v in exc_info.value.violations]

    @pytest.mark.asyncio
    async def test_scheme_mismatch(self, async_session, settings, election_factory) -> None:
        election = await election_factory()
        request = _make_request(None, scheme="quadratic", payload={"allocations": []})

        with pytest.raises(StructuralInvalidError) as exc_info:
            await _cast(async_session, settings, election, request)

        assert [v.code for v in exc_info.value.violations] == [ViolationCode.SCHEME_MISMATCH]

    @pytest.mark.asyncio
    async def test_quadratic_over_budget(self, async_session, settings, election_factory) -> None:
        election = await election_factory("quadratic")
        request = _make_request(
            None,
            scheme="quadratic",
            payload={
                "allocations": [
                    {"candidate_id": _candidate_id(election, 0), "credits": 50},
                    {"candidate_id": _candidate_id(election, 1), "credits": 51},
                ]
            },
        )

        with pytest.raises(StructuralInvalidError, match="Total credits"):
            await _cast(async_session, settings, election, request)

    @pytest.mark.asyncio
    async def test_missing_election(self, async_session, settings) -> None:
        with pytest.raises(ElectionNotFoundError):
            await cast_ballot(
                async_session,
                uuid.uuid4(),
                _make_request("x"),
                settings=settings,
                codec=CODEC,
                ledger=_make_ledger(),
                runner=MagicMock(),
            )

    @pytest.mark.asyncio
    async def test_ledger_failure_does_not_affect_acceptance(self, async_session, settings, election_factory) -> None:
        election = await election_factory()
        ledger = AsyncMock()
        ledger.record_ballot.side_effect = LedgerError("http", "HTTP 503 posting ballot", status_code=503)

        result = await _cast(async_session, settings, election, _make_request(_candidate_id(election)), ledger=ledger)

        assert result.status is CastStatus.ACCEPTED
        ledger.record_ballot.assert_awaited_once()
        assert (await async_session.execute(select(func.count(Ballot.id)))).scalar_one() == 1


class TestConcurrentCasting:
    """Simultaneous submissions from one voter store exactly one ballot."""

    @pytest.mark.asyncio
    async def test_only_one_submission_wins(self, tmp_path: Path, settings, build_election) -> None:
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ballots.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(engine, expire_on_commit=False)

        election = build_election()
        async with factory() as session:
            session.add(election)
            await session.commit()
        candidate_ids = [str(c.id) for c in election.candidates]

        async def submit(index: int):
            async with factory() as session:
                request = _make_request(candidate_ids[index % 2])
                return await _cast(session, settings, election, request)

        try:
            results = await asyncio.gather(*(submit(i) for i in range(8)))

            statuses = [r.status for r in results]
            assert statuses.count(CastStatus.ACCEPTED) == 1
            assert statuses.count(CastStatus.ALREADY_VOTED) == 7
            async with factory() as session:
                count = (await session.execute(select(func.count(Ballot.id)))).scalar_one()
            assert count == 1
        finally:
            await engine.dispose()


class TestGetVoterBallot:
    """Tests for get_voter_ballot."""

    @pytest.mark.asyncio
    async def test_before_and_after_voting(self, async_session, settings, election_factory) -> None:
        election = await election_factory()
        assert await get_voter_ballot(async_session, election.id, "voter-1", settings) is None

        result = await _cast(async_session, settings, election, _make_request(_candidate_id(election)))
        ballot = await get_voter_ballot(async_session, election.id, "voter-1", settings)

        assert ballot is not None
        assert ballot.id == result.ballot_id
        assert await get_voter_ballot(async_session, election.id, "voter-2", settings) is None


class TestVerifyBallot:
    """Tests for verify_ballot."""

    @pytest.mark.asyncio
    async def test_healthy_ballot(self, async_session, settings, election_factory) -> None:
        election = await election_factory()
        result = await _cast(async_session, settings, election, _make_request(_candidate_id(election)))

        report = await verify_ballot(async_session, result.ballot_id, CODEC)

        assert report.ballot_id == result.ballot_id
        assert report.election_title == election.title
        assert report.integrity.hash_valid is True
        assert report.integrity.payload_decodable is True
        assert report.integrity.unique_nullifier is True

    @pytest.mark.asyncio
    async def test_tampered_payload(self, async_session, settings, election_factory) -> None:
        election = await election_factory()
        result = await _cast(async_session, settings, election, _make_request(_candidate_id(election)))
        await async_session.execute(update(Ballot).where(Ballot.id == result.ballot_id).values(payload="garbage"))
        await async_session.commit()
        async_session.expunge_all()

        report = await verify_ballot(async_session, result.ballot_id, CODEC)

        assert report.integrity.hash_valid is False
        assert report.integrity.payload_decodable is False

    @pytest.mark.asyncio
    async def test_missing_ballot(self, async_session) -> None:
        with pytest.raises(BallotNotFoundError):
            await verify_ballot(async_session, uuid.uuid4(), CODEC)


class TestExportBallots:
    """Tests for export_ballots."""

    @pytest.mark.asyncio
    async def test_export_after_completion(self, async_session, settings, election_factory) -> None:
        election = await election_factory()
        for voter in ("voter-1", "voter-2"):
            await _cast(async_session, settings, election, _make_request(_candidate_id(election), voter_id=voter))

        export = await export_ballots(async_session, election.id, now=election.voting_end + timedelta(minutes=1))

        assert export.election.id == election.id
        assert len(export.ballots) == 2
        assert {b.metadata.department for b in export.ballots} == {"CS"}
        dumped = export.model_dump_json()
        assert "voter-1" not in dumped
        assert "payload" not in dumped

    @pytest.mark.asyncio
    async def test_export_before_completion(self, async_session, election_factory) -> None:
        election = await election_factory()

        with pytest.raises(ExportNotReadyError, match="after the election is completed"):
            await export_ballots(async_session, election.id, now=datetime.now(UTC))
