"""Ledger collaborator — best-effort recording of accepted ballot hashes.

Public API:
    - BaseLedger: Abstract ledger client
    - HttpLedger: JSON-over-HTTP ledger
    - LoggingLedger: Ledger that only logs (default when no ledger is configured)
    - build_ledger: Construct the configured ledger from settings
"""

from loguru import logger

from ballot_api.lib.ledger.base import BaseLedger, LedgerEntry, LedgerError, LedgerReceipt
from ballot_api.lib.ledger.http import HttpLedger


class LoggingLedger(BaseLedger):
    """Ledger stand-in used when no external ledger is configured."""

    @property
    def ledger_name(self) -> str:
        return "log"

    async def record_ballot(self, entry: LedgerEntry) -> LedgerReceipt:
        logger.info("Ledger disabled; ballot {} hash {} not anchored", entry.ballot_id, entry.vote_hash)
        return LedgerReceipt(ledger_name=self.ledger_name)


def build_ledger(enabled: bool, url: str | None, timeout: float = 10.0) -> BaseLedger:
    """Return the HTTP ledger when enabled with a URL, else the logging ledger."""
    if enabled and url:
        return HttpLedger(url, timeout=timeout)
    if enabled:
        logger.warning("Ledger enabled but no ledger_url configured; falling back to log-only ledger")
    return LoggingLedger()


__all__ = [
    "BaseLedger",
    "HttpLedger",
    "LedgerEntry",
    "LedgerError",
    "LedgerReceipt",
    "LoggingLedger",
    "build_ledger",
]
