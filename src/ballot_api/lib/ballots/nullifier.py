"""Nullifier and vote-hash derivation.

A nullifier identifies "this voter in this election" without storing the
voter's identity on the ballot.  It is an HMAC keyed by a server secret,
so it is deterministic for the same inputs but cannot be recomputed (or
brute-forced from a list of voter ids) without that key.
"""

import hashlib
import hmac


def derive_nullifier(voter_id: str, election_id: str, secret: str) -> str:
    """Derive the per-voter-per-election nullifier.

    Args:
        voter_id: The voter's stable identifier.
        election_id: The election identifier.
        secret: Server-side HMAC key.

    Returns:
        A 64-character lowercase hex digest.

    Raises:
        ValueError: If the voter or election id is empty.
    """
    if not voter_id or not election_id:
        msg = "voter_id and election_id are required to derive a nullifier"
        raise ValueError(msg)
    message = f"nullifier:{election_id}:{voter_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def compute_vote_hash(election_id: str, nullifier: str, encoded_payload: str) -> str:
    """Integrity hash over a stored ballot's identifying fields and payload."""
    digest = hashlib.sha256()
    for part in (election_id, nullifier, encoded_payload):
        digest.update(part.encode())
        digest.update(b"\x1f")
    return digest.hexdigest()


def verify_vote_hash(election_id: str, nullifier: str, encoded_payload: str, vote_hash: str) -> bool:
    """Check a stored vote hash in constant time."""
    expected = compute_vote_hash(election_id, nullifier, encoded_payload)
    return hmac.compare_digest(expected, vote_hash)
