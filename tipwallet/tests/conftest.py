"""
Test configuration for tipwallet tests.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from tipwallet.models import UnspentOutput, UnspentOutputs
from tipwallet.preferences import MemoryPreferences
from tipwallet.vault import KeyVault

# Private key 1 (not for production use!)
WIF_COMPRESSED = "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"
ADDRESS_COMPRESSED = "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"
WIF_UNCOMPRESSED = "5HpHagT65TZzG1PH3CSu63k8DbpvD8s5ip4nEB3kEsreAnchuDf"
ADDRESS_UNCOMPRESSED = "1EHNa6Q4Jz2uvNExL497mE43ikXhwF6kZm"

DEST_P2PKH = "1BvBMSEYstWetqTFn5Au4m4GFg7xJaNVN2"
DEST_P2SH = "3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy"
DEST_P2WPKH = "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"


class FailingPreferences(MemoryPreferences):
    """Memory store whose writes to one field fail."""

    def __init__(self, failing_field: str, **initial: Any):
        super().__init__(**initial)
        self.failing_field = failing_field

    async def set(self, name: str, value: Any) -> None:
        if name == self.failing_field:
            raise OSError(f"disk full while writing {name}")
        await super().set(name, value)


def make_utxo(value: int, tx_byte: str = "aa", index: int = 0) -> UnspentOutput:
    return UnspentOutput(tx_hash=tx_byte * 32, output_index=index, value=value)


@pytest.fixture
def preferences() -> MemoryPreferences:
    """Store holding the unencrypted test key."""
    return MemoryPreferences(address=ADDRESS_COMPRESSED, private_key=WIF_COMPRESSED)


@pytest_asyncio.fixture
async def vault(preferences: MemoryPreferences) -> KeyVault:
    vault = KeyVault(preferences)
    await vault.restore()
    return vault


@pytest.fixture
def mock_backend():
    """Create a mock ledger backend."""
    backend = MagicMock()
    backend.get_unspent_outputs = AsyncMock(return_value=UnspentOutputs())
    backend.get_address_balance = AsyncMock(return_value=0)
    backend.broadcast_transaction = AsyncMock(return_value="txid123")
    backend.close = AsyncMock()
    return backend
