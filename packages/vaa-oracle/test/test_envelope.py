#!/usr/bin/env python3
"""Unit tests for VAA envelope parsing."""

import pytest

from conftest import CHAIN_ID, EMITTER_HEX, SNAPSHOT_JSON, build_vaa
from vaa_oracle.envelope import (
    PAYLOAD_OFFSET,
    body_offset,
    decode_envelope,
    decode_payload_json,
    parse_envelope,
    parse_envelope_bytes,
    require_json_object,
)
from vaa_oracle.errors import BadEncodingError, FormatError, ParseError, TruncatedEnvelopeError


class TestParseEnvelope:
    """Test suite for parse_envelope."""

    def test_parse_fixed_fixture(self):
        """Test parsing a byte-for-byte fixture with one signature."""
        fixture = (
            "01" "00000000" "01"                      # version, guardian set, 1 signature
            + "00" + "ee" * 65                        # signature
            + "6553f100" "00000007" "2713"            # timestamp, nonce, chain 10003
            + EMITTER_HEX
            + "000000000000002a" "01"                 # sequence 42, consistency level
            + "7b7d"                                  # payload "{}"
        )

        body = parse_envelope(fixture)

        assert body.emitter_chain == 10003
        assert body.emitter_address == EMITTER_HEX
        assert body.sequence == 42
        assert body.payload == b"{}"

    @pytest.mark.parametrize("signature_count", [0, 1, 2, 13, 19])
    def test_body_offset_follows_signature_count(self, signature_count):
        """Test that the body is located after 66 bytes per signature."""
        vaa = build_vaa(signature_count=signature_count, sequence=9, payload=b'{"a":1}')

        assert body_offset(signature_count) == 6 + 66 * signature_count

        body = parse_envelope_bytes(vaa)
        assert body.emitter_chain == CHAIN_ID
        assert body.emitter_address == EMITTER_HEX
        assert body.sequence == 9
        assert body.payload == b'{"a":1}'

    def test_sequence_uses_all_64_bits(self):
        """Test that large sequences are read as big-endian 64-bit integers."""
        body = parse_envelope_bytes(build_vaa(sequence=2**64 - 2))
        assert body.sequence == 2**64 - 2

    def test_accepts_0x_prefix_and_upper_case(self):
        """Test that hex decoding ignores a 0x prefix and case."""
        vaa = build_vaa()
        assert parse_envelope("0x" + vaa.hex().upper()) == parse_envelope_bytes(vaa)

    def test_minimum_length_is_rejected(self):
        """Test that a VAA ending right after the fixed body fields is truncated."""
        vaa = build_vaa(payload=b"")
        assert len(vaa) == body_offset(1) + PAYLOAD_OFFSET

        with pytest.raises(TruncatedEnvelopeError):
            parse_envelope_bytes(vaa)

    def test_one_payload_byte_is_enough(self):
        """Test that a single payload byte past the fixed fields parses."""
        body = parse_envelope_bytes(build_vaa(payload=b"x"))
        assert body.payload == b"x"

    def test_signature_count_beyond_data_is_truncated(self):
        """Test that a header claiming more signatures than present is rejected."""
        vaa = bytearray(build_vaa(signature_count=1))
        vaa[5] = 5

        with pytest.raises(TruncatedEnvelopeError):
            parse_envelope_bytes(bytes(vaa))

    @pytest.mark.parametrize("data", [b"", b"\x01\x00\x00", b"\x01\x00\x00\x00\x00"])
    def test_short_header_is_truncated(self, data):
        """Test that input too short to hold the header is rejected."""
        with pytest.raises(TruncatedEnvelopeError):
            parse_envelope_bytes(data)

    @pytest.mark.parametrize("bad_hex", ["zz", "0x12g4", "abc", "01 02 xx", "0x"])
    def test_non_hex_is_rejected(self, bad_hex):
        """Test that non-hex input fails before any field is read."""
        with pytest.raises(ParseError):
            parse_envelope(bad_hex)

    def test_non_hex_raises_bad_encoding(self):
        """Test the specific error kind for non-hex input."""
        with pytest.raises(BadEncodingError):
            decode_envelope("not hex at all")

    def test_non_string_is_bad_encoding(self):
        """Test that non-string input is reported as a bad encoding."""
        with pytest.raises(BadEncodingError):
            decode_envelope(None)

    def test_parsed_body_string_representation(self):
        """Test string representation of a parsed body."""
        body = parse_envelope_bytes(build_vaa())

        str_repr = str(body)
        assert 'chain=10003' in str_repr
        assert 'sequence=42' in str_repr
        assert body.to_dict()["payload"] == SNAPSHOT_JSON.encode().hex()


class TestPayloadDecoding:
    """Test suite for payload shape checks."""

    @pytest.mark.parametrize("text", ['{}', '  {"a": 1}\n', '\t{"nested": {"b": [1, 2]}}  '])
    def test_object_text_is_returned_unchanged(self, text):
        """Test that object-shaped text is accepted verbatim."""
        assert decode_payload_json(text.encode()) == text

    @pytest.mark.parametrize("text", ['[1, 2]', '"string"', '42', '', '   ', '{"open": 1', 'x{}'])
    def test_non_object_text_is_rejected(self, text):
        """Test that anything not wrapped in braces is rejected."""
        with pytest.raises(FormatError):
            decode_payload_json(text.encode())

    def test_invalid_utf8_is_rejected(self):
        """Test that a payload that is not UTF-8 is rejected."""
        with pytest.raises(FormatError, match="UTF-8"):
            decode_payload_json(b"{\xff\xfe}")

    def test_require_json_object_checks_shape_only(self):
        """Test that the check is on the braces, not on JSON validity."""
        assert require_json_object("{not really json}") == "{not really json}"
