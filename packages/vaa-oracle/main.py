#!/usr/bin/env python3
"""Entry point for the VAA Oracle service.

This module provides the main entry point for the oracle that relays
Wormhole VAAs from the guardian API, verifies them, and keeps the
latest snapshot.
"""

import argparse
import asyncio
import logging
import os
import sys

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from vaa_oracle.config import OracleConfig
from vaa_oracle.errors import OracleError
from vaa_oracle.oracle import AttestationOracle
from vaa_oracle.relayer import VaaRelayer
from vaa_oracle.verification import NearWormholeVerifier


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="VAA Oracle - Verify Wormhole snapshots and keep the latest one",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  OWNER_ID              - Identity allowed to call owner-only methods
  EMITTER_ADDRESS       - Trusted emitter contract address
  EMITTER_CHAIN_ID      - Wormhole chain id of the emitter (default: 10003)
  VERIFIER_RPC_URL      - NEAR RPC endpoint (default: https://rpc.testnet.near.org)
  VERIFIER_CONTRACT     - Wormhole core contract (default: wormhole.wormhole.testnet)
  WORMHOLESCAN_API      - Guardian API (default: https://api.testnet.wormholescan.io)
  POLLING_INTERVAL      - Guardian API polling interval (default: 30)
  LOG_LEVEL             - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("watch", help="Watch for new VAAs and relay them (default)")

    relay_parser = subparsers.add_parser("relay", help="Relay a specific VAA by sequence")
    relay_parser.add_argument("sequence", type=int, help="Emitter sequence number")

    submit_parser = subparsers.add_parser("submit", help="Submit a hex-encoded VAA")
    submit_parser.add_argument("vaa", help="Hex-encoded VAA")

    return parser


def build_oracle(config: OracleConfig) -> AttestationOracle:
    """Create an AttestationOracle wired to the configured verifier."""
    verifier = NearWormholeVerifier(
        rpc_url=config.verifier.rpc_url,
        contract_id=config.verifier.contract_id,
        method=config.verifier.method,
        request_timeout=config.verifier.request_timeout
    )
    return AttestationOracle(
        owner=config.owner_id,
        trusted_emitter=config.emitter.address,
        verifier=verifier,
        emitter_chain_id=config.emitter.chain_id
    )


async def run(args: argparse.Namespace, config: OracleConfig) -> None:
    """Run the selected command against a fresh oracle."""
    oracle = build_oracle(config)
    relayer = VaaRelayer(
        oracle,
        api_url=config.monitoring.api_url,
        request_timeout=config.monitoring.request_timeout,
        page_size=config.monitoring.page_size
    )

    match args.command:
        case "relay":
            snapshot = await relayer.relay_vaa(args.sequence)
            logger.info(f"=== Success: snapshot #{snapshot.commit_count} committed ===")
            print(snapshot.payload)
        case "submit":
            snapshot = await oracle.submit(args.vaa).result()
            logger.info(f"=== Success: snapshot #{snapshot.commit_count} committed ===")
            print(snapshot.payload)
        case _:
            try:
                await relayer.watch_and_relay(interval=config.monitoring.polling_interval)
            finally:
                oracle.log_metrics()


async def main() -> None:
    """Main entry point for the VAA Oracle.

    Parses startup arguments, loads configuration from environment,
    and runs the selected command.

    Raises:
        SystemExit: On configuration or runtime errors
    """
    args: argparse.Namespace = build_parser().parse_args()

    # Set up logging with specified level
    setup_logging(args.log_level)

    logger.info("=== VAA Oracle Starting ===")
    logger.info("Loading configuration from environment...")

    try:
        config: OracleConfig = OracleConfig.from_env()
        config.log_config()
        logger.info("Configuration loaded successfully")

        await run(args, config)

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - OWNER_ID: Identity allowed to call owner-only methods")
        logger.error("  - EMITTER_ADDRESS: Trusted emitter contract address")
        logger.error("  - EMITTER_CHAIN_ID: Wormhole chain id of the emitter (default: 10003)")
        logger.error("  - VERIFIER_RPC_URL: NEAR RPC endpoint")
        logger.error("  - WORMHOLESCAN_API: Guardian API endpoint")
        sys.exit(1)

    except (OracleError, LookupError) as e:
        logger.error(f"VAA rejected: {type(e).__name__}: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down gracefully...")
        sys.exit(0)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    # Run the main async function
    asyncio.run(main())
