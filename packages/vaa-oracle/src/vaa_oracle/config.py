#!/usr/bin/env python3
"""Configuration management for the VAA Oracle.

This module provides type-safe configuration dataclasses with validation
for the VAA Oracle. Configuration is loaded from environment variables
with sensible defaults where appropriate.
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from web3 import Web3

from .models import canonicalize_emitter

# Get logger for this module
logger = logging.getLogger(__name__)


def _validate_http_url(url: str, name: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https'):
        raise ValueError(
            f"Invalid {name} scheme: {parsed.scheme}. Expected http or https"
        )


@dataclass(frozen=True, slots=True)
class EmitterConfig:
    """Configuration for the trusted Wormhole emitter.

    Attributes:
        chain_id: Wormhole chain id the emitter lives on
        address: Emitter address, canonicalized to 64 lower-case hex characters
    """

    address: str
    chain_id: int = 10003

    def __post_init__(self) -> None:
        """Validate emitter configuration."""
        if not self.address:
            raise ValueError("Emitter address is required (EMITTER_ADDRESS)")

        if not 0 <= self.chain_id <= 0xFFFF:
            raise ValueError(f"Emitter chain id must fit in 16 bits, got {self.chain_id}")

        # A 20-byte value is an EVM contract address, check it as one
        raw = self.address.strip().lower().removeprefix("0x")
        if len(raw) == 40 and not Web3.is_address("0x" + raw):
            raise ValueError(f"Invalid emitter address: {self.address}")

        # Use object.__setattr__ since dataclass is frozen
        object.__setattr__(self, 'address', canonicalize_emitter(self.address))


@dataclass(frozen=True, slots=True)
class VerifierConfig:
    """Configuration for the guardian verifier on NEAR.

    Attributes:
        rpc_url: NEAR JSON-RPC endpoint
        contract_id: Account id of the Wormhole core contract
        method: Verification method on the contract
        request_timeout: HTTP request timeout in seconds
    """

    rpc_url: str = "https://rpc.testnet.near.org"
    contract_id: str = "wormhole.wormhole.testnet"
    method: str = "verify_vaa"
    request_timeout: int = 30

    def __post_init__(self) -> None:
        """Validate verifier configuration."""
        if not self.rpc_url:
            raise ValueError("Verifier RPC URL is required (VERIFIER_RPC_URL)")
        _validate_http_url(self.rpc_url, "verifier RPC URL")

        if not self.contract_id:
            raise ValueError("Verifier contract is required (VERIFIER_CONTRACT)")

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")


@dataclass(frozen=True, slots=True)
class MonitoringConfig:
    """Configuration for polling the Wormhole guardian API."""

    api_url: str = "https://api.testnet.wormholescan.io"
    polling_interval: int = 30  # seconds between polls
    page_size: int = 5  # recent VAAs fetched per poll
    request_timeout: int = 30  # HTTP request timeout in seconds

    def __post_init__(self) -> None:
        """Validate monitoring configuration."""
        _validate_http_url(self.api_url, "Wormholescan API URL")

        if self.polling_interval <= 0:
            raise ValueError(f"Polling interval must be positive, got {self.polling_interval}")
        if self.polling_interval > 300:
            raise ValueError(f"Polling interval too long (max 300s), got {self.polling_interval}")

        if not 1 <= self.page_size <= 100:
            raise ValueError(f"Page size must be between 1 and 100, got {self.page_size}")

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")


@dataclass(frozen=True, slots=True)
class OracleConfig:
    """Main configuration for the VAA Oracle.

    Attributes:
        owner_id: Identity allowed to call owner-only methods
        emitter: Trusted emitter configuration
        verifier: Guardian verifier configuration
        monitoring: Guardian API polling configuration
    """

    owner_id: str
    emitter: EmitterConfig
    verifier: VerifierConfig
    monitoring: MonitoringConfig

    def __post_init__(self) -> None:
        """Validate oracle configuration."""
        if not self.owner_id:
            raise ValueError("Owner id is required (OWNER_ID)")

    @classmethod
    def from_env(cls) -> "OracleConfig":
        """Load configuration from environment variables.

        Returns:
            OracleConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        owner_id = os.environ.get("OWNER_ID", "")
        if not owner_id:
            raise ValueError(
                "OWNER_ID environment variable is required. "
                "This is the identity allowed to submit snapshots directly."
            )

        emitter_address = os.environ.get("EMITTER_ADDRESS", "")
        if not emitter_address:
            raise ValueError(
                "EMITTER_ADDRESS environment variable is required. "
                "This should be the snapshot emitter contract address."
            )

        emitter_config = EmitterConfig(
            address=emitter_address,
            chain_id=int(os.environ.get("EMITTER_CHAIN_ID", "10003"))
        )

        request_timeout = int(os.environ.get("REQUEST_TIMEOUT", "30"))

        verifier_config = VerifierConfig(
            rpc_url=os.environ.get("VERIFIER_RPC_URL", "https://rpc.testnet.near.org"),
            contract_id=os.environ.get("VERIFIER_CONTRACT", "wormhole.wormhole.testnet"),
            request_timeout=request_timeout
        )

        monitoring_config = MonitoringConfig(
            api_url=os.environ.get("WORMHOLESCAN_API", "https://api.testnet.wormholescan.io"),
            polling_interval=int(os.environ.get("POLLING_INTERVAL", "30")),
            page_size=int(os.environ.get("PAGE_SIZE", "5")),
            request_timeout=request_timeout
        )

        return cls(
            owner_id=owner_id,
            emitter=emitter_config,
            verifier=verifier_config,
            monitoring=monitoring_config
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("VAA Oracle Configuration")
        logger.info("=" * 60)

        logger.info(f"Owner: {self.owner_id}")

        logger.info("Trusted Emitter:")
        logger.info(f"  Chain ID: {self.emitter.chain_id}")
        logger.info(f"  Address: {self.emitter.address}")

        logger.info("Verifier:")
        logger.info(f"  RPC URL: {self.verifier.rpc_url}")
        logger.info(f"  Contract: {self.verifier.contract_id}")
        logger.info(f"  Method: {self.verifier.method}")

        logger.info("Monitoring Settings:")
        logger.info(f"  Guardian API: {self.monitoring.api_url}")
        logger.info(f"  Polling Interval: {self.monitoring.polling_interval} seconds")
        logger.info(f"  Page Size: {self.monitoring.page_size}")
        logger.info(f"  Request Timeout: {self.monitoring.request_timeout} seconds")

        logger.info("=" * 60)
