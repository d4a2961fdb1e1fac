"""Tagged ballot payload variants, one per scheme.

A validated ballot is turned into exactly one of these models; the
``scheme`` literal is the discriminator, so stored payloads are
self-describing and the tally dispatches on a single field.
"""

import math
from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ballot_api.lib.ballots.errors import DecodeFailure
from ballot_api.lib.ballots.types import BallotScheme


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SingleChoicePayload(_Payload):
    """One selected candidate."""

    scheme: Literal["single_choice"] = "single_choice"
    candidate_id: str = Field(min_length=1)


class RankingEntry(_Payload):
    candidate_id: str = Field(min_length=1)
    rank: int = Field(ge=1)


class RankedChoicePayload(_Payload):
    """Candidates ranked 1..n."""

    scheme: Literal["ranked_choice"] = "ranked_choice"
    rankings: list[RankingEntry] = Field(min_length=1)

    def first_preference(self) -> str | None:
        for entry in self.rankings:
            if entry.rank == 1:
                return entry.candidate_id
        return None


class QuadraticAllocation(_Payload):
    candidate_id: str = Field(min_length=1)
    credits: int = Field(ge=0)

    @property
    def weight(self) -> int:
        return quadratic_weight(self.credits)


class QuadraticPayload(_Payload):
    """Credits spread across candidates."""

    scheme: Literal["quadratic"] = "quadratic"
    allocations: list[QuadraticAllocation] = Field(min_length=1)

    @property
    def total_credits(self) -> int:
        return sum(a.credits for a in self.allocations)


BallotPayload = Annotated[
    SingleChoicePayload | RankedChoicePayload | QuadraticPayload,
    Field(discriminator="scheme"),
]

_payload_adapter: TypeAdapter[BallotPayload] = TypeAdapter(BallotPayload)


def quadratic_weight(credits: int) -> int:
    """Vote weight bought by ``credits``: ``floor(sqrt(credits))``."""
    if credits <= 0:
        return 0
    return math.isqrt(credits)


def parse_payload(raw: Mapping[str, Any], scheme: BallotScheme | str | None = None) -> BallotPayload:
    """Build a typed payload from a raw mapping.

    Args:
        raw: Decoded payload mapping.
        scheme: Expected scheme.  When given it is injected if missing and
            must match the mapping's own ``scheme`` if present.

    Returns:
        The typed payload variant.

    Raises:
        DecodeFailure: If the mapping does not describe a valid payload of
            the expected scheme.
    """
    if not isinstance(raw, Mapping):
        msg = f"Ballot payload must be an object, got {type(raw).__name__}"
        raise DecodeFailure(msg)
    data = dict(raw)
    if scheme is not None:
        expected = str(scheme)
        found = data.setdefault("scheme", expected)
        if found != expected:
            msg = f"Ballot payload scheme '{found}' does not match expected '{expected}'"
            raise DecodeFailure(msg)
    try:
        return _payload_adapter.validate_python(data)
    except ValidationError as exc:
        msg = f"Ballot payload is malformed: {exc.error_count()} error(s)"
        raise DecodeFailure(msg) from exc


def dump_payload(payload: BallotPayload) -> dict[str, Any]:
    """Serialize a typed payload to a JSON-compatible dict."""
    return payload.model_dump(mode="json")
