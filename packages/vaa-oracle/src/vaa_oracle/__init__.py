"""
VAA Oracle package.

Snapshot oracle that accepts Wormhole VAAs from one trusted emitter,
has their guardian signatures verified, and keeps the latest payload.
"""

from .config import OracleConfig
from .models import ParsedBody, Snapshot, TrustedEmitter
from .oracle import AttestationOracle
from .relayer import VaaRelayer
from .verification import NearWormholeVerifier

__all__ = [
    "AttestationOracle",
    "NearWormholeVerifier",
    "OracleConfig",
    "ParsedBody",
    "Snapshot",
    "TrustedEmitter",
    "VaaRelayer",
]
__version__ = "0.1.0"
