"""Tally engine: recompute per-candidate results from stored ballots.

Results are always derived from the full ballot set; nothing is counted
incrementally on the election record.  Each scheme contributes one
scoring function to ``_SCORERS`` and that table is the only place the
tally branches on scheme.

Ballots that cannot be decoded are skipped and reported as integrity
warnings so that a damaged historical record never blocks reporting.
"""

from collections.abc import Callable, Iterable

from loguru import logger

from ballot_api.lib.ballots.codec import BallotCodec
from ballot_api.lib.ballots.errors import DecodeFailure
from ballot_api.lib.ballots.payload import (
    BallotPayload,
    QuadraticPayload,
    RankedChoicePayload,
    SingleChoicePayload,
    parse_payload,
)
from ballot_api.lib.ballots.types import (
    BallotScheme,
    ElectionConfig,
    IntegrityWarning,
    StoredBallot,
    TallyOutcome,
    TallyResult,
    WinnerSummary,
)

Contributions = dict[str, int]


def _score_single_choice(payload: SingleChoicePayload) -> Contributions:
    return {payload.candidate_id: 1}


def _score_ranked_choice(payload: RankedChoicePayload) -> Contributions:
    # First preferences only; no elimination rounds.
    first = payload.first_preference()
    return {first: 1} if first is not None else {}


def _score_quadratic(payload: QuadraticPayload) -> Contributions:
    contributions: Contributions = {}
    for allocation in payload.allocations:
        if allocation.credits > 0:
            contributions[allocation.candidate_id] = contributions.get(allocation.candidate_id, 0) + allocation.weight
    return contributions


_SCORERS: dict[BallotScheme, Callable[..., Contributions]] = {
    BallotScheme.SINGLE_CHOICE: _score_single_choice,
    BallotScheme.RANKED_CHOICE: _score_ranked_choice,
    BallotScheme.QUADRATIC: _score_quadratic,
}


def percentage(part: int | float, total: int | float) -> float:
    """``part / total`` as a percentage rounded to 2 places; 0 when total is 0."""
    if total <= 0:
        return 0.0
    return round(part / total * 100, 2)


def decode_ballot(ballot: StoredBallot, election: ElectionConfig, codec: BallotCodec) -> BallotPayload:
    """Decode a stored ballot into its typed payload.

    Raises:
        DecodeFailure: If the ballot belongs to another scheme, cannot be
            decoded by ``codec``, or does not parse as the election's scheme.
    """
    if ballot.scheme != election.scheme:
        msg = f"Ballot scheme '{ballot.scheme}' does not match election scheme '{election.scheme}'"
        raise DecodeFailure(msg)
    raw = codec.decode(ballot.payload)
    return parse_payload(raw, election.scheme)


def tally(election: ElectionConfig, ballots: Iterable[StoredBallot], codec: BallotCodec) -> TallyOutcome:
    """Tally every ballot for one election.

    Args:
        election: The election configuration.
        ballots: Accepted ballots for the election.
        codec: Codec the ballots were stored with.

    Returns:
        TallyOutcome listing every configured candidate, ordered by raw
        score descending with ties kept in candidate order.
    """
    scorer = _SCORERS[election.scheme]
    scores: dict[str, int] = {candidate.id: 0 for candidate in election.candidates}
    warnings: list[IntegrityWarning] = []
    counted = 0

    for ballot in ballots:
        try:
            contributions = scorer(decode_ballot(ballot, election, codec))
            unknown = [cid for cid in contributions if cid not in scores]
            if unknown:
                msg = f"Ballot references unknown candidate(s): {', '.join(sorted(unknown))}"
                raise DecodeFailure(msg)
        except DecodeFailure as exc:
            warnings.append(IntegrityWarning(ballot_id=str(ballot.id), reason=str(exc)))
            logger.warning("Skipping ballot {} in election {}: {}", ballot.id, election.id, exc)
            continue

        for candidate_id, points in contributions.items():
            scores[candidate_id] += points
        counted += 1

    total_score = sum(scores.values())
    results = [
        TallyResult(
            candidate_id=candidate.id,
            candidate_name=candidate.name,
            raw_score=scores[candidate.id],
            percentage=percentage(scores[candidate.id], total_score),
        )
        for candidate in election.candidates
    ]
    # list.sort is stable, so equal scores stay in candidate insertion order
    results.sort(key=lambda r: r.raw_score, reverse=True)

    if warnings:
        logger.info(
            "Tally for election {} skipped {} undecodable ballot(s)",
            election.id,
            len(warnings),
        )
    return TallyOutcome(
        results=results,
        total_score=total_score,
        counted_ballots=counted,
        integrity_warnings=warnings,
    )


def determine_winner(results: list[TallyResult]) -> WinnerSummary | None:
    """Return the outright leader, or None when nobody has votes or the top is tied."""
    if not results or results[0].raw_score <= 0:
        return None
    leader = results[0]
    runner_up = results[1].raw_score if len(results) > 1 else 0
    if runner_up == leader.raw_score:
        return None
    return WinnerSummary(
        candidate_id=leader.candidate_id,
        candidate_name=leader.candidate_name,
        margin=leader.raw_score - runner_up,
    )
