"""Live results aggregation: turnout, timeline, and cohort breakdowns.

Everything here is a pure function of the ballots passed in, so a
snapshot can be rebuilt at any time without touching the ballot store.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from ballot_api.lib.ballots.codec import BallotCodec
from ballot_api.lib.ballots.lifecycle import ensure_utc
from ballot_api.lib.ballots.tally import percentage, tally
from ballot_api.lib.ballots.types import CohortCount, ElectionConfig, LiveSnapshot, StoredBallot, TimelineBucket

UNKNOWN_COHORT = "unknown"
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class CohortDimension(StrEnum):
    """Voter attribute recorded on the ballot at acceptance time."""

    DEPARTMENT = "department"
    COHORT_YEAR = "cohort_year"
    VOTING_METHOD = "voting_method"


def compute_turnout(total_ballots: int, estimated_eligible_voters: int) -> float:
    """Ballots as a percentage of the eligible-voter estimate.

    The value is not clamped: a stale estimate can yield more than 100.
    """
    return percentage(total_ballots, estimated_eligible_voters)


def align_bucket_start(moment: datetime, width: timedelta) -> datetime:
    """Floor ``moment`` to a multiple of ``width`` since the Unix epoch (UTC)."""
    moment = ensure_utc(moment)
    offset = (moment - _EPOCH) // width
    return _EPOCH + offset * width


def build_timeline(
    accepted_at: Iterable[datetime],
    now: datetime,
    *,
    bucket: timedelta = timedelta(hours=1),
    window: timedelta = timedelta(hours=24),
) -> list[TimelineBucket]:
    """Count ballots in fixed-width buckets over a trailing window.

    The last bucket is the one containing ``now``; buckets are ordered
    oldest first.  Ballots outside the window are ignored.

    Raises:
        ValueError: If ``bucket`` is not positive or is wider than ``window``.
    """
    if bucket <= timedelta(0):
        msg = "Timeline bucket width must be positive"
        raise ValueError(msg)
    if window < bucket:
        msg = "Timeline window must be at least one bucket wide"
        raise ValueError(msg)

    bucket_count = window // bucket
    last_start = align_bucket_start(now, bucket)
    first_start = last_start - (bucket_count - 1) * bucket
    window_end = last_start + bucket

    counts = [0] * bucket_count
    for moment in accepted_at:
        moment = ensure_utc(moment)
        if first_start <= moment < window_end:
            counts[(moment - first_start) // bucket] += 1

    return [
        TimelineBucket(bucket_start=first_start + index * bucket, count=count) for index, count in enumerate(counts)
    ]


def _cohort_key(ballot: StoredBallot, dimension: CohortDimension) -> str:
    value: object
    if dimension is CohortDimension.DEPARTMENT:
        value = ballot.department
    elif dimension is CohortDimension.COHORT_YEAR:
        value = ballot.cohort_year
    else:
        value = ballot.voting_method
    if value is None or value == "":
        return UNKNOWN_COHORT
    return str(value)


def build_cohort_breakdown(
    ballots: Sequence[StoredBallot],
    dimension: CohortDimension | str = CohortDimension.DEPARTMENT,
) -> list[CohortCount]:
    """Group ballots by a denormalized voter attribute.

    Ordered by count descending, then by key.
    """
    dimension = CohortDimension(dimension)
    counts = Counter(_cohort_key(ballot, dimension) for ballot in ballots)
    total = len(ballots)
    return [
        CohortCount(cohort_key=key, count=count, percentage=percentage(count, total))
        for key, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def build_snapshot(
    election: ElectionConfig,
    ballots: Sequence[StoredBallot],
    codec: BallotCodec,
    *,
    now: datetime | None = None,
    cohort_by: CohortDimension | str = CohortDimension.DEPARTMENT,
    bucket: timedelta = timedelta(hours=1),
    window: timedelta = timedelta(hours=24),
) -> LiveSnapshot:
    """Assemble a live dashboard for one election.

    Args:
        election: The election configuration.
        ballots: Every accepted ballot visible at read time.
        codec: Codec the ballots were stored with.
        now: Reference time for the timeline (defaults to the current time).
        cohort_by: Voter attribute used for the cohort breakdown.
        bucket: Timeline bucket width.
        window: Trailing window covered by the timeline.

    Returns:
        The snapshot.  ``total_ballots`` counts every accepted ballot, even
        those skipped by the tally as undecodable.
    """
    now = ensure_utc(now or datetime.now(UTC))
    dimension = CohortDimension(cohort_by)
    outcome = tally(election, ballots, codec)
    total_ballots = len(ballots)
    return LiveSnapshot(
        election_id=election.id,
        scheme=election.scheme,
        results=outcome.results,
        total_ballots=total_ballots,
        turnout_percentage=compute_turnout(total_ballots, election.estimated_eligible_voters),
        timeline=build_timeline((b.accepted_at for b in ballots), now, bucket=bucket, window=window),
        cohort_by=dimension.value,
        cohort_breakdown=build_cohort_breakdown(ballots, dimension),
        integrity_warnings=len(outcome.integrity_warnings),
        generated_at=now,
    )
