"""Tests for live aggregation: turnout, timeline, and cohorts."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from ballot_api.lib.ballots import (
    Base64JsonCodec,
    BallotScheme,
    CandidateRef,
    CohortDimension,
    ElectionConfig,
    StoredBallot,
    build_cohort_breakdown,
    build_snapshot,
    build_timeline,
    compute_turnout,
)
from ballot_api.lib.ballots.aggregator import UNKNOWN_COHORT, align_bucket_start

CODEC = Base64JsonCodec()
NOW = datetime(2026, 3, 6, 15, 30, tzinfo=UTC)


def _make_ballot(
    candidate_id: str = "A",
    *,
    accepted_at: datetime = NOW,
    department: str | None = None,
    cohort_year: int | None = None,
    voting_method: str | None = "web",
) -> StoredBallot:
    return StoredBallot(
        id=uuid.uuid4(),
        election_id="election-1",
        scheme="single_choice",
        payload=CODEC.encode({"scheme": "single_choice", "candidate_id": candidate_id}),
        accepted_at=accepted_at,
        department=department,
        cohort_year=cohort_year,
        voting_method=voting_method,
    )


def _make_election(estimated_eligible_voters: int = 1000) -> ElectionConfig:
    return ElectionConfig(
        id="election-1",
        scheme=BallotScheme.SINGLE_CHOICE,
        candidates=(CandidateRef(id="A", name="Alice"), CandidateRef(id="B", name="Bob")),
        estimated_eligible_voters=estimated_eligible_voters,
    )


class TestComputeTurnout:
    """Tests for turnout percentage."""

    def test_basic(self) -> None:
        assert compute_turnout(250, 1000) == 25.0

    def test_not_clamped(self) -> None:
        assert compute_turnout(150, 100) == 150.0

    def test_zero_estimate(self) -> None:
        assert compute_turnout(5, 0) == 0.0


class TestBuildTimeline:
    """Tests for hourly timeline buckets."""

    def test_default_is_24_hourly_buckets_ending_at_now(self) -> None:
        timeline = build_timeline([], NOW)

        assert len(timeline) == 24
        assert timeline[-1].bucket_start == datetime(2026, 3, 6, 15, 0, tzinfo=UTC)
        assert timeline[0].bucket_start == datetime(2026, 3, 5, 16, 0, tzinfo=UTC)
        assert all(b.count == 0 for b in timeline)

    def test_bucket_boundaries_are_half_open(self) -> None:
        moments = [
            datetime(2026, 3, 6, 14, 0, tzinfo=UTC),
            datetime(2026, 3, 6, 14, 59, 59, tzinfo=UTC),
            datetime(2026, 3, 6, 15, 0, tzinfo=UTC),
        ]
        timeline = build_timeline(moments, NOW)

        assert timeline[-2].count == 2
        assert timeline[-1].count == 1

    def test_outside_window_is_ignored(self) -> None:
        moments = [NOW - timedelta(hours=30), NOW + timedelta(hours=2)]
        assert sum(b.count for b in build_timeline(moments, NOW)) == 0

    def test_naive_timestamps_are_utc(self) -> None:
        timeline = build_timeline([datetime(2026, 3, 6, 15, 10)], NOW)
        assert timeline[-1].count == 1

    def test_custom_bucket_width(self) -> None:
        timeline = build_timeline([], NOW, bucket=timedelta(minutes=15), window=timedelta(hours=1))

        assert len(timeline) == 4
        assert timeline[-1].bucket_start == datetime(2026, 3, 6, 15, 30, tzinfo=UTC)

    def test_invalid_widths(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            build_timeline([], NOW, bucket=timedelta(0))
        with pytest.raises(ValueError, match="at least one bucket"):
            build_timeline([], NOW, bucket=timedelta(hours=2), window=timedelta(hours=1))

    def test_align_bucket_start(self) -> None:
        assert align_bucket_start(NOW, timedelta(hours=1)) == datetime(2026, 3, 6, 15, 0, tzinfo=UTC)


class TestBuildCohortBreakdown:
    """Tests for cohort grouping."""

    def test_groups_by_department(self) -> None:
        ballots = [
            _make_ballot(department="CS"),
            _make_ballot(department="EE"),
            _make_ballot(department="CS"),
            _make_ballot(department=None),
        ]
        breakdown = build_cohort_breakdown(ballots, CohortDimension.DEPARTMENT)

        assert [(c.cohort_key, c.count, c.percentage) for c in breakdown] == [
            ("CS", 2, 50.0),
            ("EE", 1, 25.0),
            (UNKNOWN_COHORT, 1, 25.0),
        ]

    def test_groups_by_cohort_year(self) -> None:
        ballots = [_make_ballot(cohort_year=2), _make_ballot(cohort_year=3), _make_ballot(cohort_year=3)]
        breakdown = build_cohort_breakdown(ballots, "cohort_year")

        assert [(c.cohort_key, c.count) for c in breakdown] == [("3", 2), ("2", 1)]

    def test_groups_by_voting_method(self) -> None:
        ballots = [
            _make_ballot(voting_method="mobile"),
            _make_ballot(voting_method="web"),
            _make_ballot(voting_method="mobile"),
            _make_ballot(voting_method=None),
        ]
        breakdown = build_cohort_breakdown(ballots, CohortDimension.VOTING_METHOD)

        assert [(c.cohort_key, c.count) for c in breakdown] == [("mobile", 2), (UNKNOWN_COHORT, 1), ("web", 1)]

    def test_unknown_dimension(self) -> None:
        with pytest.raises(ValueError):
            build_cohort_breakdown([], "favourite_colour")

    def test_empty(self) -> None:
        assert build_cohort_breakdown([]) == []


class TestBuildSnapshot:
    """Tests for the assembled live snapshot."""

    def test_snapshot(self) -> None:
        ballots = [
            _make_ballot("A", department="CS", accepted_at=NOW - timedelta(minutes=10)),
            _make_ballot("A", department="CS", accepted_at=NOW - timedelta(hours=2)),
            _make_ballot("B", department="EE", accepted_at=NOW - timedelta(minutes=1)),
        ]
        snapshot = build_snapshot(_make_election(estimated_eligible_voters=10), ballots, CODEC, now=NOW)

        assert [(r.candidate_id, r.raw_score) for r in snapshot.results] == [("A", 2), ("B", 1)]
        assert snapshot.total_ballots == 3
        assert snapshot.turnout_percentage == 30.0
        assert snapshot.timeline[-1].count == 2
        assert snapshot.timeline[-3].count == 1
        assert snapshot.cohort_by == "department"
        assert snapshot.cohort_breakdown[0].cohort_key == "CS"
        assert snapshot.integrity_warnings == 0
        assert snapshot.generated_at == NOW

    def test_undecodable_ballots_still_count_towards_turnout(self) -> None:
        broken = StoredBallot(
            id=uuid.uuid4(),
            election_id="election-1",
            scheme="single_choice",
            payload="@@@",
            accepted_at=NOW,
        )
        snapshot = build_snapshot(_make_election(), [_make_ballot("A"), broken], CODEC, now=NOW)

        assert snapshot.total_ballots == 2
        assert snapshot.integrity_warnings == 1
        assert snapshot.results[0].raw_score == 1
