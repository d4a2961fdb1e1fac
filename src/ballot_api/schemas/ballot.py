"""Pydantic v2 schemas for ballot casting, status, verification, and export."""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

# --- Request schemas ---


class BallotCastRequest(BaseModel):
    """A voter's ballot submission.

    ``payload`` is validated against the election's scheme by the ballot
    validator rather than here, so every violation can be reported at once.
    """

    voter_id: str = Field(min_length=1, max_length=200)
    scheme: str = Field(min_length=1, max_length=50)
    payload: dict[str, Any]
    department: str | None = Field(default=None, max_length=100)
    cohort_year: int | None = Field(default=None, ge=1)
    voting_method: Literal["web", "mobile"] = "web"


# --- Response schemas ---


class BallotCastResponse(BaseModel):
    """Outcome of a ballot submission."""

    status: Literal["accepted", "already_voted"]
    election_id: uuid.UUID
    ballot_id: uuid.UUID | None = None
    vote_hash: str | None = None
    accepted_at: datetime | None = None
    message: str


class ViolationDetail(BaseModel):
    """One reason a ballot was rejected."""

    code: str
    message: str


class BallotRejectedResponse(BaseModel):
    """Rejected ballot with every violation found."""

    detail: str
    violations: list[ViolationDetail]


class BallotStatusResponse(BaseModel):
    """Whether a voter already has an accepted ballot in an election."""

    election_id: uuid.UUID
    has_voted: bool
    ballot_id: uuid.UUID | None = None
    accepted_at: datetime | None = None


class BallotIntegrity(BaseModel):
    """Integrity checks run against one stored ballot."""

    hash_valid: bool
    payload_decodable: bool
    unique_nullifier: bool


class BallotVerificationResponse(BaseModel):
    """Verification report for a stored ballot."""

    ballot_id: uuid.UUID
    election_id: uuid.UUID
    election_title: str
    scheme: str
    vote_hash: str
    nullifier: str
    accepted_at: datetime
    integrity: BallotIntegrity


class AnonymizedVoterMetadata(BaseModel):
    """Voter attributes kept on the ballot for cohort reporting."""

    department: str | None = None
    cohort_year: int | None = None
    voting_method: str


class ExportedBallot(BaseModel):
    """One ballot in an audit export.  The payload is never included."""

    ballot_id: uuid.UUID
    vote_hash: str
    nullifier: str
    scheme: str
    accepted_at: datetime
    metadata: AnonymizedVoterMetadata


class ExportedElection(BaseModel):
    """Election header of an audit export."""

    id: uuid.UUID
    title: str
    scheme: str
    voting_end: datetime


class BallotExportResponse(BaseModel):
    """Anonymized audit export of every accepted ballot."""

    election: ExportedElection
    ballots: list[ExportedBallot]
    exported_at: datetime
