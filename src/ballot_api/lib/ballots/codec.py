"""Pluggable encode/decode boundary for stored ballot payloads.

The stored form of a ballot is opaque to everything except the codec.
``base64-json`` reproduces the legacy reversible encoding and is an
integrity placeholder only; it provides no confidentiality.  A real
encryption scheme can be registered here without touching validation or
tally code.
"""

import base64
import binascii
import json
from typing import Any, Protocol

from ballot_api.lib.ballots.errors import DecodeFailure


class BallotCodec(Protocol):
    """Encodes payload dicts to opaque strings and back."""

    name: str

    def encode(self, payload: dict[str, Any]) -> str:
        """Encode a JSON-compatible payload."""
        ...

    def decode(self, opaque: str) -> dict[str, Any]:
        """Decode an opaque string.

        Raises:
            DecodeFailure: If the value cannot be decoded.
        """
        ...


def _loads_object(text: str) -> dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Ballot payload is not valid JSON: {exc.msg}"
        raise DecodeFailure(msg) from exc
    if not isinstance(value, dict):
        msg = "Ballot payload must decode to a JSON object"
        raise DecodeFailure(msg)
    return value


class JsonCodec:
    """Stores payloads as canonical JSON text."""

    name = "json"

    def encode(self, payload: dict[str, Any]) -> str:
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))

    def decode(self, opaque: str) -> dict[str, Any]:
        return _loads_object(opaque)


class Base64JsonCodec:
    """Legacy reversible encoding: base64 of canonical JSON."""

    name = "base64-json"

    def encode(self, payload: dict[str, Any]) -> str:
        text = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return base64.b64encode(text.encode("utf-8")).decode("ascii")

    def decode(self, opaque: str) -> dict[str, Any]:
        try:
            raw = base64.b64decode(opaque.encode("ascii"), validate=True)
            text = raw.decode("utf-8")
        except (binascii.Error, UnicodeError, ValueError) as exc:
            msg = "Ballot payload is not valid base64 JSON"
            raise DecodeFailure(msg) from exc
        return _loads_object(text)


_CODECS: dict[str, type[BallotCodec]] = {
    JsonCodec.name: JsonCodec,
    Base64JsonCodec.name: Base64JsonCodec,
}


def get_codec(name: str) -> BallotCodec:
    """Return a codec instance by name.

    Raises:
        ValueError: If no codec is registered under ``name``.
    """
    try:
        return _CODECS[name.strip().lower()]()
    except KeyError:
        msg = f"Unknown ballot codec '{name}'. Available: {', '.join(sorted(_CODECS))}"
        raise ValueError(msg) from None
