"""Ballot engine library — validate, deduplicate, tally, and aggregate ballots.

Public API:
    - validate_ballot: Per-scheme structural validation collecting all violations
    - derive_nullifier: Per-voter-per-election fingerprint
    - tally: Recompute per-candidate results from stored ballots
    - build_snapshot: Live dashboard (results, turnout, timeline, cohorts)
    - get_codec: Pluggable payload encode/decode boundary
"""

from ballot_api.lib.ballots.aggregator import (
    CohortDimension,
    build_cohort_breakdown,
    build_snapshot,
    build_timeline,
    compute_turnout,
)
from ballot_api.lib.ballots.codec import Base64JsonCodec, BallotCodec, JsonCodec, get_codec
from ballot_api.lib.ballots.errors import (
    BallotError,
    BallotRejectedError,
    DecodeFailure,
    StructuralInvalidError,
    UnknownReferenceError,
)
from ballot_api.lib.ballots.lifecycle import (
    ElectionPhase,
    election_phase,
    ensure_utc,
    is_eligible,
    is_locked,
    validate_windows,
)
from ballot_api.lib.ballots.nullifier import compute_vote_hash, derive_nullifier, verify_vote_hash
from ballot_api.lib.ballots.payload import BallotPayload, dump_payload, parse_payload, quadratic_weight
from ballot_api.lib.ballots.tally import decode_ballot, determine_winner, tally
from ballot_api.lib.ballots.types import (
    BallotScheme,
    CandidateRef,
    CastStatus,
    CohortCount,
    ElectionConfig,
    IntegrityWarning,
    LiveSnapshot,
    StoredBallot,
    TallyOutcome,
    TallyResult,
    TimelineBucket,
    WinnerSummary,
)
from ballot_api.lib.ballots.validator import Violation, ViolationCode, classify_violations, validate_ballot

__all__ = [
    "BallotCodec",
    "BallotError",
    "BallotPayload",
    "BallotRejectedError",
    "BallotScheme",
    "Base64JsonCodec",
    "CandidateRef",
    "CastStatus",
    "CohortCount",
    "CohortDimension",
    "DecodeFailure",
    "ElectionConfig",
    "ElectionPhase",
    "IntegrityWarning",
    "JsonCodec",
    "LiveSnapshot",
    "StoredBallot",
    "StructuralInvalidError",
    "TallyOutcome",
    "TallyResult",
    "TimelineBucket",
    "UnknownReferenceError",
    "Violation",
    "ViolationCode",
    "WinnerSummary",
    "build_cohort_breakdown",
    "build_snapshot",
    "build_timeline",
    "classify_violations",
    "compute_turnout",
    "compute_vote_hash",
    "decode_ballot",
    "derive_nullifier",
    "determine_winner",
    "dump_payload",
    "election_phase",
    "ensure_utc",
    "get_codec",
    "is_eligible",
    "is_locked",
    "parse_payload",
    "quadratic_weight",
    "tally",
    "validate_ballot",
    "validate_windows",
    "verify_vote_hash",
]
