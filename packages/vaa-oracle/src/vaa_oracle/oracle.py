#!/usr/bin/env python3
"""Attestation oracle state machine.

Accepts Wormhole VAAs from one trusted emitter, has their guardian
signatures verified, and commits the JSON payload as the latest snapshot.

A submission goes through two phases:

1. ``submit`` parses the VAA, checks chain, emitter and replay, reserves
   the fingerprint and dispatches verification. Nothing else changes.
2. The continuation runs once the verifier answers. On success it
   re-parses the captured VAA, checks the payload shape and commits. On
   failure it releases the reservation and aborts the task.

Both phases run without awaiting, so on a single event loop no other call
can observe or change the state halfway through either of them.
"""

import dataclasses
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from .envelope import decode_envelope, decode_payload_json, parse_envelope_bytes, require_json_object
from .errors import (
    AuthorizationError,
    FormatError,
    OracleError,
    ReplayError,
    UntrustedEmitterError,
    VerificationError,
    WrongChainError,
)
from .models import Snapshot, TrustedEmitter
from .replay_guard import ReplayGuard, fingerprint
from .snapshot_store import SnapshotStore
from .verification import DispatchHandle, GuardianVerifier, VerificationDelegate, VerificationOutcome

logger = logging.getLogger(__name__)

# Wormhole chain id of Arbitrum Sepolia
WORMHOLE_CHAIN_ID_ARBITRUM_SEPOLIA = 10003


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class OracleState:
    """All mutable oracle state, owned by a single AttestationOracle."""

    owner: str
    trusted_emitter: TrustedEmitter
    replay_guard: ReplayGuard = field(default_factory=ReplayGuard)
    snapshots: SnapshotStore = field(default_factory=SnapshotStore)


@dataclass(frozen=True, slots=True)
class PendingAttestation:
    """Plain values captured at dispatch time for the verification continuation."""

    vaa_hex: str
    fingerprint: str
    sequence: int


class AttestationOracle:
    """Verifies VAAs from a trusted emitter and keeps the latest snapshot."""

    def __init__(
        self,
        owner: str,
        trusted_emitter: str,
        verifier: GuardianVerifier,
        emitter_chain_id: int = WORMHOLE_CHAIN_ID_ARBITRUM_SEPOLIA,
        clock: Callable[[], int] | None = None
    ) -> None:
        """
        Initialize the oracle.

        Args:
            owner: Identity allowed to call owner-only methods
            trusted_emitter: Emitter address, any case, with or without 0x
            verifier: Guardian signature verifier
            emitter_chain_id: Wormhole chain id VAAs must come from
            clock: Returns the current time in milliseconds
        """
        if not owner:
            raise ValueError("Owner is required")

        self.state = OracleState(
            owner=owner,
            trusted_emitter=TrustedEmitter(chain_id=emitter_chain_id, address=trusted_emitter)
        )
        self.delegate = VerificationDelegate(verifier)
        self.clock: Callable[[], int] = clock or _now_ms

        # Metrics tracking
        self.vaas_submitted = 0
        self.vaas_rejected = 0
        self.verification_failures = 0
        self.format_failures = 0

        logger.info(
            f"AttestationOracle initialized: owner={owner}, "
            f"chain={emitter_chain_id}, emitter={self.state.trusted_emitter.address}"
        )

    # ------------------------------------------------------------------
    # Verified submission
    # ------------------------------------------------------------------

    def submit(self, vaa_hex: str) -> DispatchHandle[Snapshot]:
        """Validate a VAA and dispatch it for guardian verification.

        Must be called from a running event loop. Await ``result()`` on the
        returned handle to get the committed Snapshot.

        Args:
            vaa_hex: Hex-encoded VAA

        Returns:
            Handle on the in-flight verification

        Raises:
            ParseError: If the VAA is not hex or is truncated
            WrongChainError: If the VAA was emitted on another chain
            UntrustedEmitterError: If the VAA was emitted by another address
            ReplayError: If the VAA was already accepted or is being verified
        """
        self.vaas_submitted += 1
        try:
            vaa_bytes = decode_envelope(vaa_hex)
            parsed = parse_envelope_bytes(vaa_bytes)

            emitter = self.state.trusted_emitter
            if parsed.emitter_chain != emitter.chain_id:
                raise WrongChainError(emitter.chain_id, parsed.emitter_chain)

            if not emitter.matches(parsed):
                raise UntrustedEmitterError(parsed.emitter_address)

            fp = fingerprint(vaa_bytes)
            if self.state.replay_guard.contains(fp):
                raise ReplayError(fp)
        except OracleError as e:
            self.vaas_rejected += 1
            logger.warning(f"Rejected VAA ({type(e).__name__}): {e}")
            raise

        logger.info(
            f"Verifying VAA: chain={parsed.emitter_chain}, "
            f"emitter={parsed.emitter_address}, sequence={parsed.sequence}"
        )

        # The verifier and the continuation see one spelling of the bytes
        canonical_hex = vaa_bytes.hex()
        pending = PendingAttestation(vaa_hex=canonical_hex, fingerprint=fp, sequence=parsed.sequence)
        task = self.delegate.dispatch(
            canonical_hex,
            partial(self._on_vaa_verified, pending),
            name=f"verify-vaa-{parsed.sequence}"
        )
        # The task cannot start before this call returns to the loop
        self.state.replay_guard.reserve(fp)
        return DispatchHandle(fingerprint=fp, sequence=parsed.sequence, task=task)

    def _on_vaa_verified(self, pending: PendingAttestation, outcome: VerificationOutcome) -> Snapshot:
        """Continuation for a dispatched verification.

        Raises:
            VerificationError: If the verifier rejected the VAA
            FormatError: If the payload is not a JSON object
        """
        replay_guard = self.state.replay_guard

        if not outcome.ok:
            replay_guard.release(pending.fingerprint)
            self.verification_failures += 1
            logger.error(f"VAA verification failed (sequence {pending.sequence}): {outcome.error}")
            raise VerificationError(f"Wormhole VAA verification failed: {outcome.error}")

        logger.info(f"VAA verified by guardian set {outcome.guardian_set_index}")

        try:
            parsed = parse_envelope_bytes(decode_envelope(pending.vaa_hex))
            snapshot_json = decode_payload_json(parsed.payload)
        except FormatError as e:
            replay_guard.release(pending.fingerprint)
            self.format_failures += 1
            logger.error(f"Rejected verified VAA (sequence {pending.sequence}): {e}")
            raise

        replay_guard.insert(pending.fingerprint)
        snapshot = self.state.snapshots.commit(snapshot_json, self.clock())

        logger.info(
            f"Snapshot #{snapshot.commit_count} submitted via Wormhole VAA "
            f"at timestamp {snapshot.committed_at}"
        )
        return snapshot

    # ------------------------------------------------------------------
    # Owner-only methods
    # ------------------------------------------------------------------

    def _assert_owner(self, caller: str) -> None:
        if caller != self.state.owner:
            logger.warning(f"Rejected owner-only call from {caller}")
            raise AuthorizationError(caller)

    def submit_snapshot(self, caller: str, snapshot_json: str) -> Snapshot:
        """Commit a snapshot directly, without Wormhole verification.

        Kept for operational testing. Emitter, chain and replay checks are
        skipped; the payload shape check still applies.

        Raises:
            AuthorizationError: If ``caller`` is not the owner
            FormatError: If the text is not a JSON object
        """
        self._assert_owner(caller)
        require_json_object(snapshot_json)

        snapshot = self.state.snapshots.commit(snapshot_json, self.clock())
        logger.info(
            f"Snapshot #{snapshot.commit_count} submitted (owner bypass) "
            f"at timestamp {snapshot.committed_at}"
        )
        return snapshot

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._assert_owner(caller)
        if not new_owner:
            raise ValueError("New owner is required")

        self.state.owner = new_owner
        logger.info(f"Ownership transferred from {caller} to {new_owner}")

    def set_trusted_emitter(self, caller: str, emitter: str) -> None:
        """Rotate the trusted emitter address, canonicalized as at initialization."""
        self._assert_owner(caller)
        self.state.trusted_emitter = dataclasses.replace(self.state.trusted_emitter, address=emitter)
        logger.info(f"Trusted emitter set to {self.state.trusted_emitter.address}")

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    def get_snapshot(self) -> str:
        return self.state.snapshots.read().payload

    def get_last_update_ts(self) -> int:
        return self.state.snapshots.read().committed_at

    def get_owner(self) -> str:
        return self.state.owner

    def get_trusted_emitter(self) -> str:
        return self.state.trusted_emitter.address

    def get_snapshot_count(self) -> int:
        return self.state.snapshots.read().commit_count

    def get_processed_vaa_count(self) -> int:
        return self.state.replay_guard.processed_count

    def get_metrics(self) -> dict[str, int]:
        """Get current processing metrics.

        Returns:
            Dictionary of metric names to values
        """
        return {
            "vaas_submitted": self.vaas_submitted,
            "vaas_rejected": self.vaas_rejected,
            "verification_failures": self.verification_failures,
            "format_failures": self.format_failures,
            "snapshots_committed": self.get_snapshot_count(),
            "processed_vaas": self.get_processed_vaa_count(),
            "pending_vaas": self.state.replay_guard.pending_count
        }

    def log_metrics(self) -> None:
        """Log current processing metrics."""
        metrics: dict[str, Any] = self.get_metrics()
        logger.info(
            f"Oracle Metrics: "
            f"Submitted={metrics['vaas_submitted']}, "
            f"Rejected={metrics['vaas_rejected']}, "
            f"VerificationFailures={metrics['verification_failures']}, "
            f"FormatFailures={metrics['format_failures']}, "
            f"Committed={metrics['snapshots_committed']}, "
            f"Pending={metrics['pending_vaas']}"
        )
