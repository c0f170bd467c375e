"""
tipwallet - single-address Bitcoin wallet core.

Manages one key pair, tracks its balance, and builds, signs and broadcasts
payments through a block explorer API.
"""

from tipwallet.allocator import allocate_outputs
from tipwallet.errors import (
    BackendError,
    IncorrectPasswordError,
    InsufficientFundsError,
    InvalidKeyError,
    MalformedTransactionError,
    NoAddressError,
    NoOutputsError,
    WalletError,
    WalletErrorKind,
)
from tipwallet.fees import estimate_fee
from tipwallet.models import AllocationResult, PaymentRequest, UnspentOutput, UnspentOutputs
from tipwallet.wallet import Wallet

__version__ = "0.1.0"

__all__ = [
    "AllocationResult",
    "BackendError",
    "IncorrectPasswordError",
    "InsufficientFundsError",
    "InvalidKeyError",
    "MalformedTransactionError",
    "NoAddressError",
    "NoOutputsError",
    "PaymentRequest",
    "UnspentOutput",
    "UnspentOutputs",
    "Wallet",
    "WalletError",
    "WalletErrorKind",
    "allocate_outputs",
    "estimate_fee",
]
