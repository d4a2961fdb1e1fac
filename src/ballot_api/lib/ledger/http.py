"""HTTP ledger client: POSTs accepted-ballot records as JSON."""

import httpx
from loguru import logger

from ballot_api.lib.ledger.base import BaseLedger, LedgerEntry, LedgerError, LedgerReceipt


class HttpLedger(BaseLedger):
    """Ledger reached over HTTP.

    Args:
        url: Endpoint receiving ``{ballot_id, election_id, vote_hash, nullifier}``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(self, url: str, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @property
    def ledger_name(self) -> str:
        return "http"

    async def record_ballot(self, entry: LedgerEntry) -> LedgerReceipt:
        body = {
            "ballot_id": entry.ballot_id,
            "election_id": entry.election_id,
            "vote_hash": entry.vote_hash,
            "nullifier": entry.nullifier,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, follow_redirects=False, transport=self._transport
            ) as client:
                response = await client.post(self._url, json=body)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            msg = f"Timeout posting ballot {entry.ballot_id}"
            raise LedgerError(self.ledger_name, msg) from exc
        except httpx.HTTPStatusError as exc:
            msg = f"HTTP {exc.response.status_code} posting ballot {entry.ballot_id}"
            raise LedgerError(self.ledger_name, msg, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            msg = f"HTTP error posting ballot {entry.ballot_id}: {exc}"
            raise LedgerError(self.ledger_name, msg) from exc

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}
        reference = data.get("transaction_hash") or data.get("reference")
        logger.debug("Ledger recorded ballot {} (ref={})", entry.ballot_id, reference)
        return LedgerReceipt(ledger_name=self.ledger_name, reference=reference, extra=data)
