"""
VAA relayer.

Fetches signed VAAs for the trusted emitter from the Wormhole guardian API
(Wormholescan) and feeds them to the AttestationOracle.
"""

import asyncio
import base64
import logging
from typing import Any

import httpx

from .errors import OracleError, ReplayError
from .models import Snapshot
from .oracle import AttestationOracle

logger = logging.getLogger(__name__)


class VaaRelayer:
    """
    Polls the guardian API for new VAAs and relays them into the oracle.

    Sequences are relayed oldest first. A sequence that fails to relay is
    retried on the next poll.
    """

    def __init__(
        self,
        oracle: AttestationOracle,
        api_url: str = "https://api.testnet.wormholescan.io",
        request_timeout: float = 30.0,
        page_size: int = 5
    ) -> None:
        """
        Initialize the relayer.

        Args:
            oracle: Oracle the VAAs are submitted to
            api_url: Base URL of the Wormholescan API
            request_timeout: HTTP timeout in seconds
            page_size: Number of recent VAAs fetched per poll
        """
        self.oracle = oracle
        self.api_url = api_url.rstrip("/")
        self.request_timeout = request_timeout
        self.page_size = page_size

        self.last_sequence: int | None = None
        self.running = False
        self.shutdown_event = asyncio.Event()

        self.vaas_relayed = 0
        self.relay_failures = 0

    @property
    def emitter_chain(self) -> int:
        return self.oracle.state.trusted_emitter.chain_id

    @property
    def emitter_address(self) -> str:
        return self.oracle.get_trusted_emitter()

    async def _api_get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a Wormholescan endpoint and return the decoded JSON.

        Raises:
            httpx.HTTPStatusError: If the API answers with an error status
        """
        async with httpx.AsyncClient() as client:
            url = self.api_url + path
            logger.debug(f"Fetching {url}")
            response: httpx.Response = await client.get(
                url, params=params, timeout=self.request_timeout
            )
            response.raise_for_status()
            return response.json()

    async def fetch_vaa(self, sequence: int) -> bytes | None:
        """Fetch the signed VAA for a sequence.

        Returns:
            Raw VAA bytes, or None if the guardians have not signed it yet
        """
        path = f"/v1/signed_vaa/{self.emitter_chain}/{self.emitter_address}/{sequence}"
        try:
            data = await self._api_get(path)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.info(f"VAA {sequence} not yet available (guardians still signing)")
                return None
            raise

        return base64.b64decode(data["vaaBytes"])

    async def get_recent_vaas(self, limit: int | None = None) -> list[dict[str, Any]]:
        """List the most recent VAAs of the trusted emitter, newest first.

        Returns:
            List of dicts with ``sequence`` (int) and ``timestamp`` keys
        """
        path = f"/api/v1/vaas/{self.emitter_chain}/{self.emitter_address}"
        data = await self._api_get(path, params={"pageSize": limit or self.page_size})
        return [
            {"sequence": int(vaa["sequence"]), "timestamp": vaa.get("timestamp")}
            for vaa in data.get("data", [])
        ]

    async def relay_vaa(self, sequence: int) -> Snapshot:
        """Fetch one VAA and submit it, waiting for the commit.

        Raises:
            LookupError: If the VAA is not available yet
            OracleError: If the oracle rejects the VAA
        """
        logger.info(f"Relaying VAA sequence {sequence}...")

        vaa_bytes = await self.fetch_vaa(sequence)
        if vaa_bytes is None:
            raise LookupError(f"VAA {sequence} not available yet")

        logger.info(f"VAA fetched successfully ({len(vaa_bytes)} bytes)")

        handle = self.oracle.submit(vaa_bytes.hex())
        snapshot = await handle.result()
        self.vaas_relayed += 1
        return snapshot

    async def poll_once(self) -> None:
        """Relay every listed sequence newer than the last relayed one."""
        vaas = await self.get_recent_vaas()

        for vaa in sorted(vaas, key=lambda v: v["sequence"]):
            sequence = vaa["sequence"]
            if self.last_sequence is not None and sequence <= self.last_sequence:
                continue

            logger.info(f"New VAA detected: sequence {sequence}")
            try:
                await self.relay_vaa(sequence)
                self.last_sequence = sequence
                logger.info(f"✓ Successfully relayed sequence {sequence}")
            except ReplayError:
                logger.info(f"Sequence {sequence} already accepted, skipping")
                self.last_sequence = sequence
            except (OracleError, LookupError, httpx.HTTPError) as e:
                self.relay_failures += 1
                logger.error(f"✗ Failed to relay sequence {sequence}: {e}")
                # Keep ordering: later sequences wait for this one
                break

    async def watch_and_relay(self, interval: int = 30) -> None:
        """Poll for new VAAs until stop() is called.

        Args:
            interval: Polling interval in seconds
        """
        if self.running:
            logger.warning("Relayer already running")
            return

        self.running = True
        self.shutdown_event.clear()
        logger.info(
            f"Starting VAA watcher for emitter {self.emitter_address} "
            f"on chain {self.emitter_chain} every {interval} seconds"
        )

        try:
            while self.running:
                try:
                    await self.poll_once()
                except Exception as e:
                    logger.error(f"Error in watch loop: {e}", exc_info=True)

                try:
                    await asyncio.wait_for(self.shutdown_event.wait(), timeout=interval)
                    break  # Shutdown requested
                except asyncio.TimeoutError:
                    pass  # Poll again
        finally:
            self.running = False
            logger.info("VAA watcher stopped")

    def stop(self) -> None:
        """Stop the watch loop."""
        self.running = False
        self.shutdown_event.set()

    def get_status(self) -> dict[str, Any]:
        """
        Get current status of the relayer.

        Returns:
            Dictionary with status information
        """
        return {
            "is_running": self.running,
            "last_sequence": self.last_sequence,
            "vaas_relayed": self.vaas_relayed,
            "relay_failures": self.relay_failures,
            "emitter_chain": self.emitter_chain,
            "emitter_address": self.emitter_address
        }
