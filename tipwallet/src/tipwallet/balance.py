"""
Balance tracking for the wallet address.
"""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from tipwallet.backends.base import LedgerBackend
from tipwallet.constants import DEFAULT_CONFIRMATIONS
from tipwallet.preferences import PreferencesStore

BalanceListener = Callable[[int], None]


class BalanceTracker:
    """
    Reconciles the persisted last balance with the live one.

    A single listener is called with every balance the tracker adopts.
    """

    def __init__(self, preferences: PreferencesStore, backend: LedgerBackend):
        self.preferences = preferences
        self.backend = backend
        self.balance = 0
        self._listener: BalanceListener | None = None

    def set_listener(self, listener: BalanceListener | None) -> None:
        """Replace the registered listener (None removes it)."""
        self._listener = listener

    def _adopt(self, balance: int) -> None:
        self.balance = balance
        if self._listener is not None:
            self._listener(balance)

    async def reset(self) -> None:
        """Persist and report a zero balance (after a key change)."""
        await self.preferences.set_last_balance(0)
        self._adopt(0)

    async def refresh(self, address: str, confirmations: int = DEFAULT_CONFIRMATIONS) -> int:
        """
        Report the last stored balance, then fetch, store and report the live one.

        Args:
            address: Wallet address; nothing happens when empty
            confirmations: Reserved for confirmation-aware balances, unused

        Returns:
            The balance after the refresh
        """
        if not address:
            return self.balance

        # Last stored balance is the fastest way to update
        self._adopt(await self.preferences.get_last_balance())

        live = await self.backend.get_address_balance(address)
        await self.preferences.set_last_balance(live)
        self._adopt(live)
        logger.debug(f"Balance of {address}: {live} sats")
        return live
