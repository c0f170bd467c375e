"""
Fit a prioritized list of payment requests into the available inputs.

Inputs are consumed in the order given. The mining fee is covered first,
then each payment request in priority order. When the inputs run out the
current request is shrunk to whatever is left and every later request is
dropped, so the satisfied requests are always a prefix of the requested ones.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from loguru import logger

from tipwallet.constants import FIXED_FEE
from tipwallet.models import AllocationResult, PaymentRequest, UnspentOutput


def allocate_outputs(
    payment_requests: Sequence[PaymentRequest],
    available_inputs: Sequence[UnspentOutput],
    fee: int = FIXED_FEE,
) -> AllocationResult:
    """
    Select inputs and satisfy payment requests in priority order.

    Args:
        payment_requests: Requests ordered by descending priority
        available_inputs: Spendable outputs, consumed in order
        fee: Mining fee to reserve before any request is funded

    Returns:
        AllocationResult with the consumed inputs, the (possibly truncated
        and shrunk) requests, and totals summed over both final sets.
        The requests passed in are never modified.
    """
    selected: list[UnspentOutput] = []
    accumulated = 0
    next_input = 0

    # The fee is paid first
    while next_input < len(available_inputs):
        utxo = available_inputs[next_input]
        selected.append(utxo)
        accumulated += utxo.value
        next_input += 1
        if accumulated >= fee:
            break

    satisfied: list[PaymentRequest] = []
    required = fee

    for request in payment_requests:
        required += request.amount

        while accumulated < required and next_input < len(available_inputs):
            utxo = available_inputs[next_input]
            selected.append(utxo)
            accumulated += utxo.value
            next_input += 1

        if accumulated >= required:
            satisfied.append(request)
            continue

        # Inputs exhausted: fund what is left of this request, drop the rest
        shortfall = required - accumulated
        remaining = request.amount - shortfall
        if remaining > 0:
            satisfied.append(replace(request, amount=remaining))
            logger.debug(
                f"Request to {request.destination} shrunk from {request.amount} "
                f"to {remaining} sats"
            )
        dropped = len(payment_requests) - len(satisfied)
        if dropped:
            logger.debug(f"Inputs exhausted, {dropped} payment request(s) not funded")
        break

    return AllocationResult(
        selected_inputs=selected,
        satisfied_outputs=satisfied,
        total_inputs_satoshi=sum(utxo.value for utxo in selected),
        total_outputs_satoshi=sum(request.amount for request in satisfied),
    )
