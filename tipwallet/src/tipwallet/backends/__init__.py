"""
Ledger backend implementations.

Available backends:
- BlockCypherBackend: BlockCypher REST API (third-party, no setup required)
"""

from tipwallet.backends.base import LedgerBackend
from tipwallet.backends.blockcypher import (
    MAINNET_API_URL,
    TESTNET_API_URL,
    BlockCypherBackend,
)

__all__ = [
    "BlockCypherBackend",
    "LedgerBackend",
    "MAINNET_API_URL",
    "TESTNET_API_URL",
]
