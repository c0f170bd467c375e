"""
Builds, signs and broadcasts payment transactions.

Every unspent output of the wallet is spent. A fixed fee is deducted first,
payments are added in priority order while funds last, and the remainder
goes back to the wallet address unless it is dust, in which case it is left
to the miner.
"""

from __future__ import annotations

from collections.abc import Coroutine, Sequence
from typing import Any

from loguru import logger

from tipwallet.backends.base import LedgerBackend
from tipwallet.constants import DUST_THRESHOLD, FIXED_FEE
from tipwallet.errors import InsufficientFundsError, MalformedTransactionError, NoOutputsError
from tipwallet.keys import address_to_scriptpubkey
from tipwallet.models import PaymentRequest
from tipwallet.transaction import Transaction
from tipwallet.vault import KeyVault


class TransactionAssembler:
    def __init__(
        self,
        vault: KeyVault,
        backend: LedgerBackend,
        fee: int = FIXED_FEE,
        dust_threshold: int = DUST_THRESHOLD,
    ):
        self.vault = vault
        self.backend = backend
        self.fee = fee
        self.dust_threshold = dust_threshold

    def send(
        self, payment_requests: Sequence[PaymentRequest], password: str
    ) -> Coroutine[Any, Any, str]:
        """
        Pay the requests, highest priority first.

        The request list is validated before anything is awaited: an empty
        list raises NoOutputsError and an undecodable destination raises
        ValueError at call time. Otherwise the returned coroutine builds,
        signs and broadcasts the transaction and returns its txid.

        Raises:
            NoOutputsError: If payment_requests is empty
            ValueError: If a destination is not a valid address
        """
        if not payment_requests:
            raise NoOutputsError()
        for request in payment_requests:
            address_to_scriptpubkey(request.destination)

        return self._send(list(payment_requests), password)

    async def _send(self, payment_requests: list[PaymentRequest], password: str) -> str:
        tx = await self.build(payment_requests, password)
        logger.info(
            f"Broadcasting {tx.txid}: {len(tx.inputs)} input(s), {len(tx.outputs)} output(s)"
        )
        return await self.backend.broadcast_transaction(tx.to_hex())

    async def build(self, payment_requests: Sequence[PaymentRequest], password: str) -> Transaction:
        """
        Build and sign the payment transaction without broadcasting it.

        Raises:
            IncorrectPasswordError: If the password does not decrypt the key
            InsufficientFundsError: If funds do not cover fee plus dust, or no
                payment fits into the available funds
            NoOutputsError: If every payment is at or below the dust threshold
            MalformedTransactionError: If the resulting fee exceeds fee plus dust
            BackendError: If the unspent outputs cannot be fetched
        """
        keypair = self.vault.keypair(password)
        address = keypair.address

        unspent = await self.backend.get_unspent_outputs(address)
        utxos = unspent.deduplicated()

        tx = Transaction()
        for utxo in utxos:
            tx.add_input(utxo.tx_hash, utxo.output_index, utxo.value, keypair.script_pubkey)
        total_available = tx.total_input_value

        if total_available < self.fee + self.dust_threshold:
            raise InsufficientFundsError(
                f"Available funds [{total_available}] must exceed the mining fee "
                f"[{self.fee}] + min transaction [{self.dust_threshold}]."
            )
        total_available -= self.fee

        payable = [r for r in payment_requests if r.amount > self.dust_threshold]
        if len(payable) < len(payment_requests):
            logger.warning(
                f"Dropped {len(payment_requests) - len(payable)} payment(s) "
                f"at or below the dust threshold ({self.dust_threshold} sats)"
            )
        if not payable:
            raise NoOutputsError("All payments are at or below the dust threshold")

        spent = 0
        for request in payable:
            if request.amount > total_available - spent:
                logger.warning(
                    f"Payment of {request.amount} sats to {request.destination} exceeds "
                    f"remaining funds ({total_available - spent} sats), "
                    f"skipping it and all lower-priority payments"
                )
                break
            tx.add_output(request.destination, request.amount)
            spent += request.amount

        if not tx.outputs:
            raise InsufficientFundsError(
                f"Available funds [{total_available}] after the mining fee do not cover "
                f"the first payment [{payable[0].amount}]."
            )

        change = total_available - spent
        if change > self.dust_threshold:
            tx.add_output(address, change)
        elif change:
            # Sub-dust outputs are avoided, the miner gets it
            logger.debug(f"Leaving {change} sats of change to the miner")

        effective_fee = tx.total_input_value - tx.total_output_value
        if effective_fee > self.fee + self.dust_threshold:
            raise MalformedTransactionError(
                f"Transaction malformed, excessive fee: {effective_fee} sats "
                f"({len(tx.inputs)} inputs, {len(tx.outputs)} outputs)"
            )

        # Sign all inputs with the same key
        for i in range(len(tx.inputs)):
            tx.sign_input(i, keypair)

        logger.debug(
            f"Built transaction spending {tx.total_input_value} sats, "
            f"paying {spent} sats, change {tx.total_output_value - spent} sats, "
            f"fee {effective_fee} sats"
        )
        return tx
