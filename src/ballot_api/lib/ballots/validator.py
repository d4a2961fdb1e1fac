"""Per-scheme structural validation of submitted ballots.

Pure functions over the raw submitted payload and the election
configuration.  Every rule is checked and every violation collected, so
a voter sees all problems with a ballot at once.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ballot_api.lib.ballots.errors import BallotRejectedError, StructuralInvalidError, UnknownReferenceError
from ballot_api.lib.ballots.types import BallotScheme, ElectionConfig


class ViolationCode(StrEnum):
    """Machine-readable violation category."""

    UNKNOWN_SCHEME = "unknown_scheme"
    SCHEME_MISMATCH = "scheme_mismatch"
    UNKNOWN_CANDIDATE = "unknown_candidate"
    MISSING_FIELD = "missing_field"
    INVALID_VALUE = "invalid_value"
    EMPTY_BALLOT = "empty_ballot"
    TOO_MANY_RANKINGS = "too_many_rankings"
    DUPLICATE_RANK = "duplicate_rank"
    DUPLICATE_CANDIDATE = "duplicate_candidate"
    NON_SEQUENTIAL_RANKS = "non_sequential_ranks"
    NEGATIVE_CREDITS = "negative_credits"
    BUDGET_EXCEEDED = "budget_exceeded"


# Violations that mean the ballot references something the election does not have.
REFERENCE_CODES = frozenset({ViolationCode.UNKNOWN_SCHEME, ViolationCode.UNKNOWN_CANDIDATE})


@dataclass(frozen=True)
class Violation:
    code: ViolationCode
    message: str

    def __str__(self) -> str:
        return self.message


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _entries(payload: Mapping[str, Any], key: str, label: str) -> tuple[list[Any] | None, list[Violation]]:
    entries = payload.get(key)
    if not isinstance(entries, list) or not entries:
        return None, [Violation(ViolationCode.EMPTY_BALLOT, f"{label} are required and must be a non-empty list")]
    return entries, []


def _validate_single_choice(payload: Mapping[str, Any], election: ElectionConfig) -> list[Violation]:
    violations: list[Violation] = []
    if "rankings" in payload or "allocations" in payload:
        violations.append(
            Violation(ViolationCode.INVALID_VALUE, "Single-choice ballot must name exactly one candidate")
        )
    candidate_id = payload.get("candidate_id")
    if candidate_id is None or candidate_id == "":
        violations.append(Violation(ViolationCode.MISSING_FIELD, "Candidate selection is required"))
    elif not isinstance(candidate_id, str):
        violations.append(Violation(ViolationCode.INVALID_VALUE, "Candidate selection must be a single candidate ID"))
    elif candidate_id not in election.candidate_ids:
        violations.append(
            Violation(ViolationCode.UNKNOWN_CANDIDATE, f"Candidate '{candidate_id}' does not exist in this election")
        )
    return violations


def _validate_ranked_choice(payload: Mapping[str, Any], election: ElectionConfig) -> list[Violation]:
    entries, violations = _entries(payload, "rankings", "Rankings")
    if entries is None:
        return violations

    if len(entries) > election.max_rankings:
        violations.append(
            Violation(
                ViolationCode.TOO_MANY_RANKINGS,
                f"At most {election.max_rankings} rankings allowed, got {len(entries)}",
            )
        )

    seen_ranks: set[int] = set()
    seen_candidates: set[str] = set()
    for position, entry in enumerate(entries, start=1):
        if not isinstance(entry, Mapping):
            violations.append(Violation(ViolationCode.INVALID_VALUE, f"Ranking {position} must be an object"))
            continue
        candidate_id = entry.get("candidate_id")
        rank = entry.get("rank")
        if not candidate_id or rank is None:
            violations.append(
                Violation(ViolationCode.MISSING_FIELD, f"Ranking {position}: both candidate and rank are required")
            )
            continue
        if not isinstance(candidate_id, str):
            violations.append(
                Violation(
                    ViolationCode.INVALID_VALUE, f"Ranking {position}: candidate must be a single candidate ID"
                )
            )
            continue
        if not _is_int(rank):
            violations.append(Violation(ViolationCode.INVALID_VALUE, f"Ranking {position}: rank must be an integer"))
            continue

        if rank in seen_ranks:
            violations.append(Violation(ViolationCode.DUPLICATE_RANK, f"Duplicate rank: {rank}"))
        seen_ranks.add(rank)

        if candidate_id in seen_candidates:
            violations.append(
                Violation(ViolationCode.DUPLICATE_CANDIDATE, f"Candidate '{candidate_id}' is ranked more than once")
            )
        seen_candidates.add(candidate_id)

        if candidate_id not in election.candidate_ids:
            violations.append(
                Violation(
                    ViolationCode.UNKNOWN_CANDIDATE,
                    f"Candidate '{candidate_id}' in ranking {position} does not exist in this election",
                )
            )

    if seen_ranks and sorted(seen_ranks) != list(range(1, len(seen_ranks) + 1)):
        violations.append(
            Violation(ViolationCode.NON_SEQUENTIAL_RANKS, "Rankings must be sequential starting from 1")
        )
    return violations


def _validate_quadratic(payload: Mapping[str, Any], election: ElectionConfig) -> list[Violation]:
    entries, violations = _entries(payload, "allocations", "Credit allocations")
    if entries is None:
        return violations

    total_credits = 0
    seen_candidates: set[str] = set()
    for position, entry in enumerate(entries, start=1):
        if not isinstance(entry, Mapping):
            violations.append(Violation(ViolationCode.INVALID_VALUE, f"Allocation {position} must be an object"))
            continue
        candidate_id = entry.get("candidate_id")
        credits = entry.get("credits")
        if not candidate_id or credits is None:
            violations.append(
                Violation(
                    ViolationCode.MISSING_FIELD, f"Allocation {position}: both candidate and credits are required"
                )
            )
            continue
        if not isinstance(candidate_id, str):
            violations.append(
                Violation(
                    ViolationCode.INVALID_VALUE, f"Allocation {position}: candidate must be a single candidate ID"
                )
            )
            continue
        if not _is_int(credits):
            violations.append(
                Violation(ViolationCode.INVALID_VALUE, f"Allocation {position}: credits must be an integer")
            )
            continue

        if credits < 0:
            violations.append(
                Violation(ViolationCode.NEGATIVE_CREDITS, f"Allocation {position}: credits cannot be negative")
            )
        else:
            total_credits += credits

        if candidate_id in seen_candidates:
            violations.append(
                Violation(
                    ViolationCode.DUPLICATE_CANDIDATE, f"Candidate '{candidate_id}' has more than one allocation"
                )
            )
        seen_candidates.add(candidate_id)

        if candidate_id not in election.candidate_ids:
            violations.append(
                Violation(
                    ViolationCode.UNKNOWN_CANDIDATE,
                    f"Candidate '{candidate_id}' in allocation {position} does not exist in this election",
                )
            )

    if total_credits > election.credit_budget:
        violations.append(
            Violation(
                ViolationCode.BUDGET_EXCEEDED,
                f"Total credits ({total_credits}) exceeds limit of {election.credit_budget}",
            )
        )
    return violations


_VALIDATORS: dict[BallotScheme, Callable[[Mapping[str, Any], ElectionConfig], list[Violation]]] = {
    BallotScheme.SINGLE_CHOICE: _validate_single_choice,
    BallotScheme.RANKED_CHOICE: _validate_ranked_choice,
    BallotScheme.QUADRATIC: _validate_quadratic,
}


def validate_ballot(scheme: str, payload: Mapping[str, Any], election: ElectionConfig) -> list[Violation]:
    """Check a submitted ballot against its scheme's structural rules.

    Args:
        scheme: The scheme the ballot claims to follow.
        payload: Raw submitted payload.
        election: The election configuration to validate against.

    Returns:
        Every violation found; an empty list means the ballot is valid.
    """
    try:
        ballot_scheme = BallotScheme(scheme)
    except ValueError:
        return [Violation(ViolationCode.UNKNOWN_SCHEME, "invalid scheme")]

    if ballot_scheme != election.scheme:
        return [
            Violation(
                ViolationCode.SCHEME_MISMATCH,
                f"Ballot scheme '{ballot_scheme}' does not match election scheme '{election.scheme}'",
            )
        ]
    if not isinstance(payload, Mapping):
        return [Violation(ViolationCode.INVALID_VALUE, "Ballot payload must be an object")]

    return _VALIDATORS[ballot_scheme](payload, election)


def classify_violations(violations: list[Violation]) -> BallotRejectedError:
    """Wrap violations in the matching rejection error.

    Any reference to an unknown scheme or candidate makes the rejection an
    ``UnknownReferenceError``; everything else is ``StructuralInvalidError``.
    """
    if any(v.code in REFERENCE_CODES for v in violations):
        return UnknownReferenceError(violations)
    return StructuralInvalidError(violations)
