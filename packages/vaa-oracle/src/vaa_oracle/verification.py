#!/usr/bin/env python3
"""Guardian signature verification for VAAs.

Verification is delegated to the Wormhole core contract, which checks the
guardian quorum and answers with the index of the guardian set that signed
the VAA. The oracle dispatches a request and hands the outcome to a
one-shot continuation once the verifier answers.
"""

import asyncio
import base64
import json
import logging
from collections.abc import Callable
from functools import partial
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    """Result reported by a guardian verifier.

    Exactly one of ``guardian_set_index`` and ``error`` is set.
    """

    guardian_set_index: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.guardian_set_index is not None

    @classmethod
    def success(cls, guardian_set_index: int) -> "VerificationOutcome":
        return cls(guardian_set_index=guardian_set_index)

    @classmethod
    def failure(cls, error: str) -> "VerificationOutcome":
        return cls(error=error)


class GuardianVerifier(Protocol):
    """Anything that can check the guardian signatures on a VAA."""

    async def verify(self, vaa_hex: str) -> VerificationOutcome:
        """Verify a hex-encoded VAA.

        Returns a failed outcome instead of raising when the VAA is rejected.
        """
        ...


class NearWormholeVerifier:
    """Verifies VAAs by calling ``verify_vaa`` on the Wormhole core contract on NEAR.

    The call is made as a view function over NEAR JSON-RPC, so no key is
    needed. The contract returns the guardian set index as a JSON number
    and fails the call when the signatures do not reach quorum.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_id: str = "wormhole.wormhole.testnet",
        method: str = "verify_vaa",
        request_timeout: float = 30.0
    ) -> None:
        """
        Initialize the verifier.

        Args:
            rpc_url: NEAR JSON-RPC endpoint
            contract_id: Account id of the Wormhole core contract
            method: Verification method name on the contract
            request_timeout: HTTP timeout in seconds
        """
        if not rpc_url:
            raise ValueError("Verifier RPC URL is required")

        self.rpc_url: str = rpc_url
        self.contract_id: str = contract_id
        self.method: str = method
        self.request_timeout: float = request_timeout

    def _build_request(self, vaa_hex: str) -> dict[str, Any]:
        args: bytes = json.dumps({"vaa": vaa_hex}).encode()
        return {
            "jsonrpc": "2.0",
            "id": "vaa-oracle",
            "method": "query",
            "params": {
                "request_type": "call_function",
                "finality": "final",
                "account_id": self.contract_id,
                "method_name": self.method,
                "args_base64": base64.b64encode(args).decode()
            }
        }

    async def _rpc_post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Post a JSON-RPC request and return the decoded response.

        Raises:
            httpx.HTTPError: If the request fails
        """
        async with httpx.AsyncClient() as client:
            logger.debug(f"Posting {payload['params']['method_name']} to {self.rpc_url}")
            response: httpx.Response = await client.post(
                self.rpc_url, json=payload, timeout=self.request_timeout
            )
            response.raise_for_status()
            return response.json()

    def _decode_response(self, response: dict[str, Any]) -> VerificationOutcome:
        """Turn a NEAR ``call_function`` response into a VerificationOutcome."""
        match response:
            case {"error": rpc_error}:
                return VerificationOutcome.failure(f"RPC error: {rpc_error}")
            case {"result": {"error": call_error}}:
                return VerificationOutcome.failure(f"Contract call failed: {call_error}")
            case {"result": {"result": list(raw)}}:
                try:
                    value: Any = json.loads(bytes(raw).decode())
                except (ValueError, UnicodeDecodeError) as decode_error:
                    return VerificationOutcome.failure(f"Undecodable result: {decode_error}")
                # bool is an int subclass, reject it explicitly
                if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
                    return VerificationOutcome.success(value)
                return VerificationOutcome.failure(f"Unexpected verifier result: {value!r}")
            case _:
                return VerificationOutcome.failure(f"Unknown RPC response format: {response}")

    async def verify(self, vaa_hex: str) -> VerificationOutcome:
        try:
            response = await self._rpc_post(self._build_request(vaa_hex))
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Verifier request to {self.rpc_url} failed: {e}")
            return VerificationOutcome.failure(f"Verifier unavailable: {e}")

        outcome = self._decode_response(response)
        if not outcome.ok:
            logger.warning(f"Verifier rejected VAA: {outcome.error}")
        return outcome


@dataclass(frozen=True, slots=True)
class DispatchHandle(Generic[T]):
    """Handle on a dispatched verification.

    Awaiting ``result()`` yields what the continuation returned, or raises
    what the continuation raised.
    """

    fingerprint: str
    sequence: int
    task: "asyncio.Task[T]"

    def done(self) -> bool:
        return self.task.done()

    async def result(self) -> T:
        # Shielded so a caller that stops waiting does not cancel the verification
        return await asyncio.shield(self.task)


class VerificationDelegate:
    """Sends VAAs to a GuardianVerifier and runs a continuation on the answer."""

    def __init__(self, verifier: GuardianVerifier) -> None:
        self.verifier = verifier

    def dispatch(
        self,
        vaa_hex: str,
        continuation: Callable[[VerificationOutcome], T],
        name: str | None = None
    ) -> "asyncio.Task[T]":
        """Schedule verification of ``vaa_hex``.

        The continuation is called exactly once with the outcome. Must be
        called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._verify_then(vaa_hex, continuation), name=name)
        task.add_done_callback(partial(self._fail_if_cancelled, continuation))
        task.add_done_callback(self._log_abort)
        return task

    async def _verify_then(
        self,
        vaa_hex: str,
        continuation: Callable[[VerificationOutcome], T]
    ) -> T:
        try:
            outcome = await self.verifier.verify(vaa_hex)
        except Exception as e:
            logger.error(f"Verifier raised during verification: {e}", exc_info=True)
            outcome = VerificationOutcome.failure(str(e))

        return continuation(outcome)

    @staticmethod
    def _fail_if_cancelled(
        continuation: Callable[[VerificationOutcome], Any],
        task: "asyncio.Task[Any]"
    ) -> None:
        # Covers cancellation before the task first ran as well as mid-verify
        if not task.cancelled():
            return
        try:
            continuation(VerificationOutcome.failure("verification cancelled"))
        except Exception as e:
            logger.warning(f"Cancelled verification {task.get_name()} closed: {e}")

    @staticmethod
    def _log_abort(task: "asyncio.Task[Any]") -> None:
        if task.cancelled():
            logger.warning(f"Verification task {task.get_name()} was cancelled")
            return
        if (error := task.exception()) is not None:
            logger.error(f"Verification task {task.get_name()} aborted: {type(error).__name__}: {error}")
