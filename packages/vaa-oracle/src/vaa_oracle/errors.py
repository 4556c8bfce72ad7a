#!/usr/bin/env python3
"""Error taxonomy for the VAA Oracle.

Every failure the oracle can report derives from OracleError, so callers
can catch the whole family or a single kind.
"""


class OracleError(Exception):
    """Base class for all oracle errors."""


class ParseError(OracleError):
    """The envelope could not be decoded."""


class TruncatedEnvelopeError(ParseError):
    """The envelope is shorter than its header says it must be."""


class BadEncodingError(ParseError):
    """The envelope is not valid hexadecimal."""


class ValidationError(OracleError):
    """The envelope does not come from the trusted source."""


class WrongChainError(ValidationError):
    """The envelope was emitted on a chain other than the configured one."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Invalid emitter chain: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class UntrustedEmitterError(ValidationError):
    """The envelope was emitted by an address other than the trusted emitter."""

    def __init__(self, emitter_address: str) -> None:
        super().__init__(f"Invalid emitter address: {emitter_address}")
        self.emitter_address = emitter_address


class ReplayError(OracleError):
    """The envelope has already been accepted or is awaiting verification."""

    def __init__(self, fingerprint: str) -> None:
        super().__init__(f"VAA already processed: {fingerprint}")
        self.fingerprint = fingerprint


class VerificationError(OracleError):
    """The guardian verifier rejected the envelope."""


class FormatError(OracleError):
    """The payload is not a JSON object."""


class AuthorizationError(OracleError):
    """A non-owner called an owner-only operation."""

    def __init__(self, caller: str) -> None:
        super().__init__(f"Only owner can call this method (caller: {caller})")
        self.caller = caller
