"""
Bitcoin fee and dust constants used by the wallet.

The wallet pays a fixed mining fee rather than a size-based one:
- FIXED_FEE: deducted once from the available funds of every send
- DUST_THRESHOLD: payments at or below this value are dropped, and leftover
  change at or below it is left to the miner instead of creating an output
"""

from __future__ import annotations

# Fixed mining fee paid by every transaction (0.0001 BTC)
FIXED_FEE = 10_000  # satoshis

# Smallest output the wallet is willing to create.
# 10x the historical 546 sat relay limit, rounded the way early wallets did
DUST_THRESHOLD = 5_430  # satoshis

# Confirmations requested when refreshing the balance (currently informational)
DEFAULT_CONFIRMATIONS = 6

SATOSHIS_PER_BTC = 100_000_000

# Size estimate parameters for legacy P2PKH transactions (bytes)
INPUT_SIZE_ESTIMATE = 181
OUTPUT_SIZE_ESTIMATE = 34
TX_OVERHEAD_ESTIMATE = 10

# Fee charged per started kilobyte by estimate_fee()
FEE_PER_KB = 10_000  # satoshis
