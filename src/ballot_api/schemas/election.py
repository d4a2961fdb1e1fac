"""Pydantic v2 schemas for election endpoints."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

SchemeName = Literal["single_choice", "ranked_choice", "quadratic"]

# --- Request schemas ---


class CandidateCreate(BaseModel):
    """A candidate entry in an election creation request."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    department: str | None = Field(default=None, max_length=100)


class ElectionCreateRequest(BaseModel):
    """Request body for creating an election.

    Candidates keep the order given here; that order breaks tally ties.
    Scheme limits left unset fall back to the configured defaults.
    """

    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=1000)
    scheme: SchemeName
    candidates: list[CandidateCreate] = Field(min_length=2, description="At least 2 candidates required")
    max_rankings: int | None = Field(default=None, ge=1, le=50)
    credit_budget: int | None = Field(default=None, ge=1)
    estimated_eligible_voters: int | None = Field(default=None, ge=1)
    eligible_departments: list[str] = Field(default_factory=list)
    eligible_years: list[int] = Field(default_factory=list)
    registration_start: datetime
    registration_end: datetime
    voting_start: datetime
    voting_end: datetime


class ElectionUpdateRequest(BaseModel):
    """Partial update, accepted only before voting starts."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=1000)
    max_rankings: int | None = Field(default=None, ge=1, le=50)
    credit_budget: int | None = Field(default=None, ge=1)
    estimated_eligible_voters: int | None = Field(default=None, ge=1)
    eligible_departments: list[str] | None = None
    eligible_years: list[int] | None = None
    registration_start: datetime | None = None
    registration_end: datetime | None = None
    voting_start: datetime | None = None
    voting_end: datetime | None = None


# --- Response schemas ---


class CandidateResponse(BaseModel):
    """Candidate as returned by the API."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    name: str
    description: str | None = None
    department: str | None = None
    position: int


class ElectionSummary(BaseModel):
    """Election summary for list endpoints."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    title: str
    scheme: str
    phase: str
    voting_start: datetime
    voting_end: datetime


class ElectionDetailResponse(ElectionSummary):
    """Full election detail."""

    description: str | None = None
    candidates: list[CandidateResponse]
    max_rankings: int
    credit_budget: int
    estimated_eligible_voters: int
    eligible_departments: list[str]
    eligible_years: list[int]
    registration_start: datetime
    registration_end: datetime
    created_at: datetime
    updated_at: datetime


class ElectionListResponse(BaseModel):
    """Elections ordered by voting start, newest first."""

    items: list[ElectionSummary]
    total: int
