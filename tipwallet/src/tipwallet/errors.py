"""
Wallet error taxonomy.

Every public wallet operation either succeeds or raises one of the
WalletError subclasses below; preferences-store failures propagate unchanged.
"""

from __future__ import annotations

from enum import Enum


class WalletErrorKind(str, Enum):
    """Closed set of wallet failure kinds."""

    INCORRECT_PASSWORD = "incorrect_password"
    INVALID_KEY = "invalid_key"
    NO_OUTPUTS = "no_outputs"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    MALFORMED_TRANSACTION = "malformed_transaction"
    NO_ADDRESS = "no_address"
    BACKEND_ERROR = "backend_error"


class WalletError(Exception):
    """Base class for wallet failures. Carries a kind and a readable message."""

    kind: WalletErrorKind = WalletErrorKind.BACKEND_ERROR
    default_message = "Wallet error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class IncorrectPasswordError(WalletError):
    kind = WalletErrorKind.INCORRECT_PASSWORD
    default_message = "Incorrect password"


class InvalidKeyError(WalletError):
    kind = WalletErrorKind.INVALID_KEY
    default_message = "Invalid private key"


class NoOutputsError(WalletError):
    kind = WalletErrorKind.NO_OUTPUTS
    default_message = "No outputs"


class InsufficientFundsError(WalletError):
    kind = WalletErrorKind.INSUFFICIENT_FUNDS
    default_message = "Insufficient funds"


class MalformedTransactionError(WalletError):
    kind = WalletErrorKind.MALFORMED_TRANSACTION
    default_message = "Transaction malformed, excessive fee"


class NoAddressError(WalletError):
    kind = WalletErrorKind.NO_ADDRESS
    default_message = "No address"


class BackendError(WalletError):
    """Block explorer request or broadcast failed."""

    kind = WalletErrorKind.BACKEND_ERROR
    default_message = "Block explorer request failed"
