"""
Base block explorer backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tipwallet.models import UnspentOutputs


class LedgerBackend(ABC):
    """
    Abstract ledger backend interface.

    Implementations read unspent outputs and balances for an address from a
    remote ledger and push signed transactions to it.
    """

    @abstractmethod
    async def get_unspent_outputs(self, address: str) -> UnspentOutputs:
        """Get confirmed and unconfirmed unspent outputs of an address"""

    @abstractmethod
    async def get_address_balance(self, address: str) -> int:
        """Get confirmed balance of an address in satoshis"""

    @abstractmethod
    async def broadcast_transaction(self, tx_hex: str) -> str:
        """Broadcast a signed transaction, returns txid"""

    async def close(self) -> None:
        """Close backend connection"""
        pass
