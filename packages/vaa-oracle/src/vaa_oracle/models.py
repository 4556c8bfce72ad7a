#!/usr/bin/env python3
"""Data models for the VAA Oracle system.

This module provides immutable data classes for the parsed VAA body, the
committed snapshot and the trusted emitter identity.
"""

from dataclasses import dataclass
from typing import Any

EMITTER_ADDRESS_HEX_LENGTH = 64


def canonicalize_emitter(address: str) -> str:
    """Normalize an emitter address to 32 bytes of lower-case hex.

    Accepts upper or lower case, with or without a ``0x`` prefix, and
    left-pads short values (such as 20-byte EVM addresses) with zeros.

    Args:
        address: Emitter address as a hex string

    Returns:
        The 64-character lower-case hex form without prefix

    Raises:
        ValueError: If the address is empty, not hex, or longer than 32 bytes
    """
    normalized = address.strip().lower().removeprefix("0x")
    if not normalized:
        raise ValueError("Emitter address is required")

    if len(normalized) > EMITTER_ADDRESS_HEX_LENGTH:
        raise ValueError(
            f"Emitter address too long: expected at most "
            f"{EMITTER_ADDRESS_HEX_LENGTH} hex characters, got {len(normalized)}"
        )

    padded = normalized.rjust(EMITTER_ADDRESS_HEX_LENGTH, "0")
    try:
        decoded = bytes.fromhex(padded)
    except ValueError:
        raise ValueError(f"Invalid emitter address: {address}") from None

    # fromhex skips whitespace between byte pairs
    if len(decoded) != EMITTER_ADDRESS_HEX_LENGTH // 2:
        raise ValueError(f"Invalid emitter address: {address}")

    return padded


@dataclass(frozen=True, slots=True)
class ParsedBody:
    """The fields of a VAA body the oracle cares about.

    Attributes:
        emitter_chain: Wormhole chain id of the emitting chain
        emitter_address: 32-byte emitter address as lower-case hex
        sequence: Emitter sequence number (recorded, not enforced)
        payload: Raw payload bytes
    """

    emitter_chain: int
    emitter_address: str
    sequence: int
    payload: bytes

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"ParsedBody(chain={self.emitter_chain}, "
            f"emitter={self.emitter_address[-8:]}, "
            f"sequence={self.sequence}, "
            f"payload={len(self.payload)} bytes)"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "emitter_chain": self.emitter_chain,
            "emitter_address": self.emitter_address,
            "sequence": self.sequence,
            "payload": self.payload.hex()
        }


@dataclass(frozen=True, slots=True)
class Snapshot:
    """The latest committed payload.

    Attributes:
        payload: JSON object text
        committed_at: Commit time in milliseconds since the Unix epoch
        commit_count: Number of commits made so far
    """

    payload: str
    committed_at: int
    commit_count: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "payload": self.payload,
            "committed_at": self.committed_at,
            "commit_count": self.commit_count
        }


@dataclass(frozen=True, slots=True)
class TrustedEmitter:
    """The single source the oracle accepts VAAs from."""

    chain_id: int
    address: str

    def __post_init__(self) -> None:
        if not 0 <= self.chain_id <= 0xFFFF:
            raise ValueError(f"Emitter chain id must fit in 16 bits, got {self.chain_id}")

        # Use object.__setattr__ since dataclass is frozen
        object.__setattr__(self, 'address', canonicalize_emitter(self.address))

    def matches(self, body: ParsedBody) -> bool:
        """Check whether a parsed body was emitted by this emitter's address."""
        return body.emitter_address.lower() == self.address
