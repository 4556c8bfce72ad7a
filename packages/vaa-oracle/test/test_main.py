#!/usr/bin/env python3
"""Tests for the command line entry point."""

import os
from unittest.mock import AsyncMock, patch

import pytest

import main
from conftest import EMITTER_EVM_ADDRESS, EMITTER_HEX, SNAPSHOT_JSON, FakeVerifier, build_vaa
from vaa_oracle.config import OracleConfig
from vaa_oracle.errors import UntrustedEmitterError

ENV = {"OWNER_ID": "owner.testnet", "EMITTER_ADDRESS": EMITTER_EVM_ADDRESS}


@pytest.fixture
def config():
    with patch.dict(os.environ, ENV, clear=True):
        return OracleConfig.from_env()


class TestArguments:
    """Tests for argument parsing."""

    def test_default_command_is_watch(self):
        args = main.build_parser().parse_args([])
        assert args.command is None

    def test_relay_sequence(self):
        args = main.build_parser().parse_args(["--log-level", "DEBUG", "relay", "17"])

        assert args.command == "relay"
        assert args.sequence == 17
        assert args.log_level == "DEBUG"

    def test_relay_requires_numeric_sequence(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(["relay", "latest"])


class TestRun:
    """Tests for running commands against a fresh oracle."""

    def test_build_oracle(self, config):
        oracle = main.build_oracle(config)

        assert oracle.get_owner() == "owner.testnet"
        assert oracle.get_trusted_emitter() == EMITTER_HEX
        assert oracle.delegate.verifier.contract_id == "wormhole.wormhole.testnet"

    @pytest.mark.asyncio
    async def test_submit_command(self, config, capsys):
        args = main.build_parser().parse_args(["submit", build_vaa().hex()])

        with patch.object(main, "NearWormholeVerifier", return_value=FakeVerifier()):
            await main.run(args, config)

        assert capsys.readouterr().out.strip() == SNAPSHOT_JSON

    @pytest.mark.asyncio
    async def test_submit_command_rejects_untrusted_emitter(self, config):
        vaa_hex = build_vaa(emitter_address="00" * 32).hex()
        args = main.build_parser().parse_args(["submit", vaa_hex])

        with patch.object(main, "NearWormholeVerifier", return_value=FakeVerifier()):
            with pytest.raises(UntrustedEmitterError):
                await main.run(args, config)

    @pytest.mark.asyncio
    async def test_relay_command(self, config, capsys):
        args = main.build_parser().parse_args(["relay", "5"])

        with patch.object(main, "NearWormholeVerifier", return_value=FakeVerifier()), \
             patch("vaa_oracle.relayer.VaaRelayer.fetch_vaa",
                   AsyncMock(return_value=build_vaa(sequence=5))):
            await main.run(args, config)

        assert capsys.readouterr().out.strip() == SNAPSHOT_JSON
