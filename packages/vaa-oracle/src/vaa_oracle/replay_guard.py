#!/usr/bin/env python3
"""Replay protection for accepted VAAs."""

import logging

from web3 import Web3

logger = logging.getLogger(__name__)


def fingerprint(vaa_bytes: bytes) -> str:
    """Compute the replay key of a VAA: keccak256 of its raw bytes as 0x-hex."""
    return Web3.to_hex(Web3.keccak(vaa_bytes))


class ReplayGuard:
    """Tracks VAA fingerprints that have been accepted or are being verified.

    Committed fingerprints live in an append-only set. A fingerprint is
    reserved when its VAA is dispatched for verification and either
    promoted to the committed set or released once the outcome is known,
    so a VAA cannot be dispatched twice while a verification is in flight.
    """

    def __init__(self) -> None:
        self._processed: set[str] = set()
        self._pending: set[str] = set()

    def contains(self, fp: str) -> bool:
        """Check whether a fingerprint is committed or reserved."""
        return fp in self._processed or fp in self._pending

    def is_processed(self, fp: str) -> bool:
        return fp in self._processed

    def reserve(self, fp: str) -> None:
        """Reserve a fingerprint for an in-flight verification.

        Raises:
            KeyError: If the fingerprint is already committed or reserved
        """
        if self.contains(fp):
            raise KeyError(fp)
        self._pending.add(fp)
        logger.debug(f"Reserved fingerprint {fp}")

    def release(self, fp: str) -> None:
        """Drop a reservation after a failed verification.

        Committed fingerprints are never removed.
        """
        self._pending.discard(fp)
        logger.debug(f"Released fingerprint {fp}")

    def insert(self, fp: str) -> None:
        """Record a fingerprint as committed, consuming any reservation."""
        self._pending.discard(fp)
        self._processed.add(fp)

    @property
    def processed_count(self) -> int:
        return len(self._processed)

    @property
    def pending_count(self) -> int:
        return len(self._pending)
