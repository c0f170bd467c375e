"""
Wallet data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class UnspentOutput:
    """A spendable output belonging to the wallet address"""

    tx_hash: str
    output_index: int
    value: int
    script: str = ""  # scriptPubKey hex, empty if the explorer did not return it
    confirmations: int = 0


@dataclass
class PaymentRequest:
    """A requested payment. Lists of requests are ordered by descending priority."""

    destination: str
    amount: int


@dataclass
class AllocationResult:
    """Result of fitting payment requests into the available inputs"""

    selected_inputs: list[UnspentOutput]
    satisfied_outputs: list[PaymentRequest]
    total_inputs_satoshi: int
    total_outputs_satoshi: int

    @property
    def is_empty(self) -> bool:
        return not self.selected_inputs and not self.satisfied_outputs


@dataclass
class UnspentOutputs:
    """Snapshot of the unspent outputs reported by the block explorer."""

    unconfirmed: list[UnspentOutput] = field(default_factory=list)
    confirmed: list[UnspentOutput] = field(default_factory=list)

    def deduplicated(self) -> list[UnspentOutput]:
        """
        Merge both lists, unconfirmed first, keeping the first entry per tx hash.

        The explorer may report the same transaction in both lists while it
        confirms; the unconfirmed entry wins.
        """
        seen: set[str] = set()
        merged: list[UnspentOutput] = []
        for utxo in self.unconfirmed + self.confirmed:
            if utxo.tx_hash in seen:
                continue
            seen.add(utxo.tx_hash)
            merged.append(utxo)
        return merged
