"""
Single-address wallet.

Wallet owns the key vault, the balance tracker and the transaction
assembler; all wallet state lives on one Wallet instance.

Calls on the same instance are not serialized against each other: a balance
refresh running while a send or password change is in progress reads and
writes the same stored fields. Callers needing atomicity across calls must
serialize them.
"""

from __future__ import annotations

from collections.abc import Coroutine, Sequence
from types import TracebackType
from typing import Any

from loguru import logger

from tipwallet.allocator import allocate_outputs
from tipwallet.assembler import TransactionAssembler
from tipwallet.backends.base import LedgerBackend
from tipwallet.backends.blockcypher import BlockCypherBackend
from tipwallet.balance import BalanceListener, BalanceTracker
from tipwallet.cipher import cipher_for
from tipwallet.config import WalletSettings
from tipwallet.errors import BackendError
from tipwallet.fees import estimate_fee
from tipwallet.models import AllocationResult, PaymentRequest, UnspentOutput
from tipwallet.preferences import JsonFilePreferences, PreferencesStore
from tipwallet.vault import KeyVault


class Wallet:
    def __init__(
        self,
        settings: WalletSettings | None = None,
        preferences: PreferencesStore | None = None,
        backend: LedgerBackend | None = None,
    ):
        self.settings = settings or WalletSettings()
        self.preferences = preferences or JsonFilePreferences(self.settings.preferences_path)
        self.backend = backend or BlockCypherBackend(
            base_url=self.settings.get_api_url(),
            token=self.settings.api_token,
            unspent_limit=self.settings.unspent_limit,
            timeout=self.settings.request_timeout,
        )

        self.vault = KeyVault(
            self.preferences,
            cipher=cipher_for(self.settings.cipher_format),
            network=self.settings.network,
        )
        self.tracker = BalanceTracker(self.preferences, self.backend)
        self.assembler = TransactionAssembler(
            self.vault,
            self.backend,
            fee=self.settings.fixed_fee,
            dust_threshold=self.settings.dust_threshold,
        )

    @property
    def address(self) -> str:
        return self.vault.address

    @property
    def balance(self) -> int:
        return self.tracker.balance

    @property
    def is_encrypted(self) -> bool:
        return self.vault.is_encrypted

    def set_balance_listener(self, listener: BalanceListener | None) -> None:
        """Listener gets called with the new balance whenever it updates"""
        self.tracker.set_listener(listener)

    async def update_balance(self, confirmations: int | None = None) -> int:
        if confirmations is None:
            confirmations = self.settings.balance_confirmations
        return await self.tracker.refresh(self.address, confirmations)

    async def restore(self) -> str:
        """
        Restore the previously saved address and refresh its balance.

        An unreachable explorer does not fail the restore: the stored balance
        stays in effect and the error is logged.

        Raises:
            NoAddressError: If no address has been generated or imported
        """
        address = await self.vault.restore()
        try:
            await self.update_balance()
        except BackendError as e:
            logger.warning(f"Could not refresh balance, keeping stored value: {e.message}")
        return address

    async def generate_address(self) -> str:
        address = await self.vault.generate()
        await self.tracker.reset()
        return address

    async def import_address(self, password: str, wif: str) -> str:
        address = await self.vault.import_key(password, wif)
        await self.tracker.reset()
        return address

    def validate_password(self, password: str) -> bool:
        return self.vault.validate_password(password)

    def get_decrypted_private_key(self, password: str) -> str | None:
        return self.vault.decrypt(password)

    async def update_password(self, password: str, new_password: str) -> None:
        await self.vault.update_password(password, new_password)

    async def get_unspent_outputs(self) -> list[UnspentOutput]:
        """Deduplicated unspent outputs of the wallet address, unconfirmed first."""
        unspent = await self.backend.get_unspent_outputs(self.address)
        return unspent.deduplicated()

    async def plan_payments(self, payment_requests: Sequence[PaymentRequest]) -> AllocationResult:
        """Show which requests the current unspent outputs can fund, and with which inputs."""
        utxos = await self.get_unspent_outputs()
        result = allocate_outputs(payment_requests, utxos, fee=self.settings.fixed_fee)
        logger.debug(
            f"Plan: {len(result.selected_inputs)} input(s) fund "
            f"{len(result.satisfied_outputs)}/{len(payment_requests)} payment(s)"
        )
        return result

    def estimate_fee(self, num_inputs: int, num_outputs: int) -> int:
        return estimate_fee(num_inputs, num_outputs)

    def send(
        self, payment_requests: Sequence[PaymentRequest], password: str
    ) -> Coroutine[Any, Any, str]:
        """See TransactionAssembler.send. Raises NoOutputsError immediately on no requests."""
        return self.assembler.send(payment_requests, password)

    async def close(self) -> None:
        await self.backend.close()

    async def __aenter__(self) -> Wallet:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
