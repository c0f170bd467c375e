"""
Mining fee estimation.
"""

from __future__ import annotations

from tipwallet.constants import (
    FEE_PER_KB,
    INPUT_SIZE_ESTIMATE,
    OUTPUT_SIZE_ESTIMATE,
    TX_OVERHEAD_ESTIMATE,
)


def estimate_tx_size(num_inputs: int, num_outputs: int) -> int:
    """Estimated size in bytes of a legacy P2PKH transaction."""
    return (
        num_inputs * INPUT_SIZE_ESTIMATE
        + num_outputs * OUTPUT_SIZE_ESTIMATE
        + TX_OVERHEAD_ESTIMATE
    )


def estimate_fee(num_inputs: int, num_outputs: int) -> int:
    """
    Estimate the mining fee for a transaction, in satoshis.

    Charges FEE_PER_KB for every started kilobyte of estimated size.

    Only valid for reasonably-sized (< 253 inputs and outputs) and standard
    (one signature required) transactions; larger varints and multisig
    scripts are not accounted for.

    Args:
        num_inputs: Number of P2PKH inputs
        num_outputs: Number of outputs

    Returns:
        Estimated fee in satoshis
    """
    size = estimate_tx_size(num_inputs, num_outputs)
    kilobytes = -(-size // 1000)  # ceil
    return kilobytes * FEE_PER_KB
