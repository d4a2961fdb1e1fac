"""Exception types raised by the ballot engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ballot_api.lib.ballots.validator import Violation


class BallotError(Exception):
    """Base class for expected, user-visible ballot rejections."""


class BallotRejectedError(BallotError):
    """A ballot failed validation; carries every violation found."""

    def __init__(self, violations: list[Violation]) -> None:
        self.violations = violations
        super().__init__("; ".join(v.message for v in violations))

    @property
    def messages(self) -> list[str]:
        return [v.message for v in self.violations]


class StructuralInvalidError(BallotRejectedError):
    """The payload breaks the rules of its scheme."""


class UnknownReferenceError(BallotRejectedError):
    """The ballot names a scheme or candidate the election does not have."""


class DecodeFailure(BallotError):
    """A stored ballot payload could not be decoded or parsed."""
