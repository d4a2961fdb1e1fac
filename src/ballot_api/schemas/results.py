"""Pydantic v2 schemas for tally and live results endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel


class TallyResultResponse(BaseModel):
    """One candidate's line in a tally."""

    model_config = {"from_attributes": True}

    candidate_id: str
    candidate_name: str
    raw_score: int
    percentage: float


class WinnerResponse(BaseModel):
    """Outright leader and margin over the runner-up."""

    model_config = {"from_attributes": True}

    candidate_id: str
    candidate_name: str
    margin: int


class TallyResponse(BaseModel):
    """Full tally for an election."""

    election_id: uuid.UUID
    scheme: str
    phase: str
    results: list[TallyResultResponse]
    total_score: int
    counted_ballots: int
    integrity_warnings: int
    winner: WinnerResponse | None = None


class TimelineBucketResponse(BaseModel):
    """Ballots accepted within one timeline bucket."""

    model_config = {"from_attributes": True}

    bucket_start: datetime
    count: int


class CohortCountResponse(BaseModel):
    """Ballots from one voter cohort."""

    model_config = {"from_attributes": True}

    cohort_key: str
    count: int
    percentage: float


class LiveSnapshotResponse(BaseModel):
    """Point-in-time live results dashboard."""

    election_id: uuid.UUID
    scheme: str
    phase: str
    results: list[TallyResultResponse]
    total_ballots: int
    turnout_percentage: float
    timeline: list[TimelineBucketResponse]
    cohort_by: str
    cohort_breakdown: list[CohortCountResponse]
    integrity_warnings: int
    generated_at: datetime
