#!/usr/bin/env python3
"""Shared fixtures for VAA Oracle tests."""

import asyncio
import sys
from pathlib import Path

import pytest

# Make main.py importable from the tests
sys.path.insert(0, str(Path(__file__).parent.parent))

from vaa_oracle.oracle import AttestationOracle
from vaa_oracle.verification import VerificationOutcome

OWNER = "owner.testnet"
EMITTER_EVM_ADDRESS = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
EMITTER_HEX = "000000000000000000000000abcdef0123456789abcdef0123456789abcdef01"
CHAIN_ID = 10003
NOW_MS = 1_700_000_000_123

SNAPSHOT_JSON = '{"kid1": "-----BEGIN CERTIFICATE-----\\nMIIB..."}'


def build_vaa(
    payload: bytes = SNAPSHOT_JSON.encode(),
    emitter_chain: int = CHAIN_ID,
    emitter_address: str = EMITTER_HEX,
    sequence: int = 42,
    signature_count: int = 1,
    guardian_set_index: int = 0,
    timestamp: int = 1_700_000_000,
    nonce: int = 7,
    consistency_level: int = 1
) -> bytes:
    """Assemble a VAA with dummy signatures."""
    header = (
        bytes([1])
        + guardian_set_index.to_bytes(4, 'big')
        + bytes([signature_count])
    )
    # Each signature is a guardian index byte followed by a 65-byte signature
    signatures = b''.join(bytes([i]) + bytes([0xEE]) * 65 for i in range(signature_count))
    body = (
        timestamp.to_bytes(4, 'big')
        + nonce.to_bytes(4, 'big')
        + emitter_chain.to_bytes(2, 'big')
        + bytes.fromhex(emitter_address)
        + sequence.to_bytes(8, 'big')
        + bytes([consistency_level])
        + payload
    )
    return header + signatures + body


class FakeVerifier:
    """GuardianVerifier stand-in with a scripted outcome.

    When ``gate`` is set, verification waits on it so tests can act while
    a verification is in flight.
    """

    def __init__(self, outcome: VerificationOutcome | None = None) -> None:
        self.outcome = outcome or VerificationOutcome.success(3)
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def verify(self, vaa_hex: str) -> VerificationOutcome:
        self.calls.append(vaa_hex)
        if self.gate is not None:
            await self.gate.wait()
        return self.outcome


@pytest.fixture
def vaa_hex():
    """A well-formed VAA from the trusted emitter."""
    return build_vaa().hex()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def oracle(verifier):
    """An oracle trusting the test emitter with a fixed clock."""
    return AttestationOracle(
        owner=OWNER,
        trusted_emitter=EMITTER_EVM_ADDRESS,
        verifier=verifier,
        emitter_chain_id=CHAIN_ID,
        clock=lambda: NOW_MS
    )
