"""Tests for the stored-payload codecs."""

import base64

import pytest

from ballot_api.lib.ballots import Base64JsonCodec, DecodeFailure, JsonCodec, get_codec


class TestGetCodec:
    """Tests for codec lookup."""

    def test_known_names(self) -> None:
        assert isinstance(get_codec("json"), JsonCodec)
        assert isinstance(get_codec(" Base64-JSON "), Base64JsonCodec)

    def test_unknown_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown ballot codec"):
            get_codec("rot13")


class TestBase64JsonCodec:
    """Tests for the legacy base64 JSON encoding."""

    def test_encoding_is_canonical(self) -> None:
        codec = Base64JsonCodec()
        first = codec.encode({"b": 1, "a": 2})
        second = codec.encode({"a": 2, "b": 1})
        assert first == second
        assert base64.b64decode(first) == b'{"a":2,"b":1}'

    def test_decode(self) -> None:
        codec = Base64JsonCodec()
        assert codec.decode(codec.encode({"candidate_id": "A"})) == {"candidate_id": "A"}

    def test_invalid_base64(self) -> None:
        with pytest.raises(DecodeFailure):
            Base64JsonCodec().decode("not base64!!")

    def test_base64_of_non_object(self) -> None:
        opaque = base64.b64encode(b"[1, 2]").decode()
        with pytest.raises(DecodeFailure, match="JSON object"):
            Base64JsonCodec().decode(opaque)

    def test_base64_of_invalid_json(self) -> None:
        opaque = base64.b64encode(b"{oops").decode()
        with pytest.raises(DecodeFailure, match="not valid JSON"):
            Base64JsonCodec().decode(opaque)


class TestJsonCodec:
    """Tests for the plain JSON codec."""

    def test_compact_sorted_output(self) -> None:
        assert JsonCodec().encode({"scheme": "single_choice", "candidate_id": "A"}) == (
            '{"candidate_id":"A","scheme":"single_choice"}'
        )

    def test_invalid_json(self) -> None:
        with pytest.raises(DecodeFailure):
            JsonCodec().decode("{")
