#!/usr/bin/env python3
"""VAA envelope decoding.

A VAA is laid out as a 6-byte header, one 66-byte signature per guardian,
then the body. All integers are big-endian.

Header:
    0   version (1 byte)
    1   guardian set index (4 bytes)
    5   signature count n (1 byte)
    6   signatures (66 * n bytes)

Body (offsets relative to the start of the body):
    0   timestamp (4 bytes)
    4   nonce (4 bytes)
    8   emitter chain (2 bytes)
    10  emitter address (32 bytes)
    42  sequence (8 bytes)
    50  consistency level (1 byte)
    51  payload (remainder)

Only the structure is checked here. Whether the emitter is trusted is
decided by the oracle.
"""

import logging

from .errors import BadEncodingError, FormatError, TruncatedEnvelopeError
from .models import ParsedBody

logger = logging.getLogger(__name__)

HEADER_LENGTH = 6
SIGNATURE_COUNT_OFFSET = 5
SIGNATURE_LENGTH = 66

EMITTER_CHAIN_OFFSET = 8
EMITTER_ADDRESS_OFFSET = 10
SEQUENCE_OFFSET = 42
PAYLOAD_OFFSET = 51


def decode_envelope(envelope_hex: str) -> bytes:
    """Decode a hex-encoded VAA into raw bytes.

    Args:
        envelope_hex: Hex string, with or without a 0x prefix

    Returns:
        The raw VAA bytes

    Raises:
        BadEncodingError: If the input is not valid hexadecimal
    """
    if not isinstance(envelope_hex, str):
        raise BadEncodingError(f"Invalid VAA hex: expected str, got {type(envelope_hex).__name__}")

    hex_str = envelope_hex.strip().removeprefix("0x")
    try:
        return bytes.fromhex(hex_str)
    except ValueError as e:
        raise BadEncodingError(f"Invalid VAA hex: {e}") from None


def body_offset(signature_count: int) -> int:
    """Return the offset of the body for a VAA with the given signature count."""
    return HEADER_LENGTH + SIGNATURE_LENGTH * signature_count


def parse_envelope_bytes(vaa_bytes: bytes) -> ParsedBody:
    """Parse raw VAA bytes into a ParsedBody.

    Raises:
        TruncatedEnvelopeError: If the VAA does not reach past the fixed body fields
    """
    if len(vaa_bytes) < HEADER_LENGTH:
        raise TruncatedEnvelopeError(
            f"VAA too short: header needs {HEADER_LENGTH} bytes, got {len(vaa_bytes)}"
        )

    offset = body_offset(vaa_bytes[SIGNATURE_COUNT_OFFSET])

    # The body must carry at least one byte past the fixed fields
    if len(vaa_bytes) <= offset + PAYLOAD_OFFSET:
        raise TruncatedEnvelopeError(
            f"VAA too short: body starts at {offset}, "
            f"need more than {offset + PAYLOAD_OFFSET} bytes, got {len(vaa_bytes)}"
        )

    body = vaa_bytes[offset:]

    return ParsedBody(
        emitter_chain=int.from_bytes(
            body[EMITTER_CHAIN_OFFSET:EMITTER_ADDRESS_OFFSET], byteorder='big'
        ),
        emitter_address=body[EMITTER_ADDRESS_OFFSET:SEQUENCE_OFFSET].hex(),
        sequence=int.from_bytes(body[SEQUENCE_OFFSET:SEQUENCE_OFFSET + 8], byteorder='big'),
        payload=bytes(body[PAYLOAD_OFFSET:])
    )


def parse_envelope(envelope_hex: str) -> ParsedBody:
    """Decode and parse a hex-encoded VAA.

    Raises:
        BadEncodingError: If the input is not valid hexadecimal
        TruncatedEnvelopeError: If the VAA is too short
    """
    return parse_envelope_bytes(decode_envelope(envelope_hex))


def decode_payload_json(payload: bytes) -> str:
    """Decode a payload as JSON object text.

    The text is returned as-is. It only has to be UTF-8 and, once
    surrounding whitespace is trimmed, start with ``{`` and end with ``}``.

    Raises:
        FormatError: If the payload is not UTF-8 or not object-shaped
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FormatError(f"Invalid UTF-8 payload: {e}") from None

    return require_json_object(text)


def require_json_object(text: str) -> str:
    """Return ``text`` unchanged if it looks like a JSON object, else raise FormatError."""
    trimmed = text.strip()
    if not (trimmed.startswith("{") and trimmed.endswith("}")):
        logger.debug(f"Rejecting payload that is not a JSON object: {trimmed[:32]!r}")
        raise FormatError("Invalid JSON format in payload")
    return text
