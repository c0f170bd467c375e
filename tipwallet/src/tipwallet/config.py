"""
Configuration management for the wallet.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tipwallet.backends.blockcypher import MAINNET_API_URL, TESTNET_API_URL
from tipwallet.constants import DEFAULT_CONFIRMATIONS, DUST_THRESHOLD, FIXED_FEE


class WalletSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TIPWALLET_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    network: Literal["mainnet", "testnet"] = "mainnet"

    # Block explorer; empty means the BlockCypher endpoint of the network
    api_url: str | None = None
    api_token: str | None = None
    unspent_limit: int = Field(default=50, ge=1, le=2000)
    # None: requests wait as long as the explorer takes
    request_timeout: float | None = Field(default=None, gt=0)

    # Ciphertext format of the stored private key
    cipher_format: Literal["openssl", "json"] = "openssl"
    preferences_path: Path = Path.home() / ".tipwallet" / "preferences.json"

    balance_confirmations: int = Field(default=DEFAULT_CONFIRMATIONS, ge=0)
    fixed_fee: int = Field(default=FIXED_FEE, ge=0)
    dust_threshold: int = Field(default=DUST_THRESHOLD, ge=0)

    log_level: str = "INFO"

    def get_api_url(self) -> str:
        if self.api_url:
            return self.api_url.rstrip("/")
        return MAINNET_API_URL if self.network == "mainnet" else TESTNET_API_URL


def get_settings() -> WalletSettings:
    return WalletSettings()
