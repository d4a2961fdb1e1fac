"""Data types shared by the ballot validation, tally, and aggregation code.

These are plain in-memory structures, decoupled from the ORM so that the
engine can be exercised without a database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import uuid
    from datetime import datetime


class BallotScheme(StrEnum):
    """Voting method governing ballot structure and the tally rule."""

    SINGLE_CHOICE = "single_choice"
    RANKED_CHOICE = "ranked_choice"
    QUADRATIC = "quadratic"


class CastStatus(StrEnum):
    """Outcome of registering a ballot's nullifier."""

    ACCEPTED = "accepted"
    ALREADY_VOTED = "already_voted"


@dataclass(frozen=True)
class CandidateRef:
    """A candidate as seen by the engine: stable ID plus display name."""

    id: str
    name: str


@dataclass(frozen=True)
class ElectionConfig:
    """Read-only election configuration consumed by the validator and tally.

    Attributes:
        id: Election identifier.
        scheme: The election's ballot scheme.
        candidates: Candidates in insertion order (this order breaks ties).
        max_rankings: Upper bound on ranked-choice ballot length.
        credit_budget: Credits available on a quadratic ballot.
        estimated_eligible_voters: Turnout denominator.
    """

    id: str
    scheme: BallotScheme
    candidates: tuple[CandidateRef, ...]
    max_rankings: int = 3
    credit_budget: int = 100
    estimated_eligible_voters: int = 1000

    @cached_property
    def candidate_ids(self) -> frozenset[str]:
        return frozenset(c.id for c in self.candidates)


@dataclass(frozen=True)
class StoredBallot:
    """An accepted ballot as read back from the ballot store."""

    id: uuid.UUID | str
    election_id: str
    scheme: str
    payload: str
    accepted_at: datetime
    department: str | None = None
    cohort_year: int | None = None
    voting_method: str | None = None


@dataclass(frozen=True)
class TallyResult:
    """Per-candidate tally line."""

    candidate_id: str
    candidate_name: str
    raw_score: int
    percentage: float


@dataclass(frozen=True)
class IntegrityWarning:
    """A stored ballot that was skipped during tallying."""

    ballot_id: str
    reason: str


@dataclass(frozen=True)
class WinnerSummary:
    """Leading candidate and margin over the runner-up."""

    candidate_id: str
    candidate_name: str
    margin: int


@dataclass
class TallyOutcome:
    """Full output of one tally run.

    Attributes:
        results: Tally lines ordered by raw score, ties in candidate order.
        total_score: Sum of all raw scores.
        counted_ballots: Ballots that decoded and contributed to the tally.
        integrity_warnings: Ballots skipped because they could not be decoded.
    """

    results: list[TallyResult]
    total_score: int
    counted_ballots: int
    integrity_warnings: list[IntegrityWarning] = field(default_factory=list)


@dataclass(frozen=True)
class TimelineBucket:
    """Count of ballots accepted in ``[bucket_start, bucket_start + width)``."""

    bucket_start: datetime
    count: int


@dataclass(frozen=True)
class CohortCount:
    """Ballots grouped by a denormalized voter attribute."""

    cohort_key: str
    count: int
    percentage: float


@dataclass
class LiveSnapshot:
    """Point-in-time dashboard for one election."""

    election_id: str
    scheme: BallotScheme
    results: list[TallyResult]
    total_ballots: int
    turnout_percentage: float
    timeline: list[TimelineBucket]
    cohort_by: str
    cohort_breakdown: list[CohortCount]
    integrity_warnings: int
    generated_at: datetime
