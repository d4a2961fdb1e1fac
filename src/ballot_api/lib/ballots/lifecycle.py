"""Election lifecycle windows and eligibility rules."""

from collections.abc import Sequence
from datetime import UTC, datetime
from enum import StrEnum


class ElectionPhase(StrEnum):
    """Phase of an election derived from its registration and voting windows."""

    UPCOMING = "upcoming"
    REGISTRATION = "registration"
    WAITING = "waiting"
    VOTING = "voting"
    COMPLETED = "completed"


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def validate_windows(
    registration_start: datetime,
    registration_end: datetime,
    voting_start: datetime,
    voting_end: datetime,
) -> list[str]:
    """Return every ordering problem with an election's windows."""
    reg_start, reg_end, vote_start, vote_end = (
        ensure_utc(t) for t in (registration_start, registration_end, voting_start, voting_end)
    )
    errors: list[str] = []
    if reg_start >= reg_end:
        errors.append("Registration end time must be after start time")
    if vote_start >= vote_end:
        errors.append("Voting end time must be after start time")
    if vote_start <= reg_end:
        errors.append("Voting must start after registration ends")
    return errors


def election_phase(
    now: datetime,
    registration_start: datetime,
    registration_end: datetime,
    voting_start: datetime,
    voting_end: datetime,
) -> ElectionPhase:
    """Derive the phase for ``now``; every window is half-open ``[start, end)``."""
    now = ensure_utc(now)
    if now < ensure_utc(registration_start):
        return ElectionPhase.UPCOMING
    if now < ensure_utc(registration_end):
        return ElectionPhase.REGISTRATION
    if now < ensure_utc(voting_start):
        return ElectionPhase.WAITING
    if now < ensure_utc(voting_end):
        return ElectionPhase.VOTING
    return ElectionPhase.COMPLETED


def is_locked(phase: ElectionPhase) -> bool:
    """Election configuration is frozen once voting has started."""
    return phase in (ElectionPhase.VOTING, ElectionPhase.COMPLETED)


def is_eligible(
    eligible_departments: Sequence[str],
    eligible_years: Sequence[int],
    department: str | None,
    cohort_year: int | None,
) -> bool:
    """Check voter attributes against an election's eligibility lists.

    An empty list places no restriction on that attribute.
    """
    if eligible_departments and department not in eligible_departments:
        return False
    return not (eligible_years and cohort_year not in eligible_years)
