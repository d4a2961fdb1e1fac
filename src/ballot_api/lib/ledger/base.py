"""Interface for the external ballot ledger collaborator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class LedgerEntry:
    """What the ledger learns about an accepted ballot.

    Only integrity material is sent: no payload and no voter identity.
    """

    ballot_id: str
    election_id: str
    vote_hash: str
    nullifier: str


@dataclass(frozen=True)
class LedgerReceipt:
    """Acknowledgement returned by a ledger."""

    ledger_name: str
    reference: str | None = None
    extra: dict = field(default_factory=dict)


class LedgerError(Exception):
    """Raised when the ledger cannot record an entry.

    Args:
        ledger_name: Name of the failing ledger.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the ledger.
    """

    def __init__(self, ledger_name: str, message: str, status_code: int | None = None) -> None:
        self.ledger_name = ledger_name
        self.message = message
        self.status_code = status_code
        super().__init__(f"{ledger_name}: {message}")


class BaseLedger(ABC):
    """Abstract ledger client.

    Callers treat every ledger as best-effort: an exception from
    ``record_ballot`` is logged and never changes whether a ballot counts.
    """

    @property
    @abstractmethod
    def ledger_name(self) -> str:
        """Short name used in logs (e.g. 'http')."""

    @abstractmethod
    async def record_ballot(self, entry: LedgerEntry) -> LedgerReceipt:
        """Record an accepted ballot.

        Raises:
            LedgerError: On transport or service failure.
        """
