"""
Key material lifecycle: generation, import, and password protection.

The password is never stored. When encrypted, only the ciphertext of the
private key is persisted and held; the plaintext exists only as the return
value of decrypt().
"""

from __future__ import annotations

from loguru import logger

from tipwallet.cipher import CipherError, PasswordCipher
from tipwallet.errors import IncorrectPasswordError, NoAddressError
from tipwallet.keys import KeyPair
from tipwallet.preferences import PreferencesStore


class KeyVault:
    """Owns the wallet address, its private key material and the encryption flag."""

    def __init__(
        self,
        preferences: PreferencesStore,
        cipher: PasswordCipher | None = None,
        network: str = "mainnet",
    ):
        self.preferences = preferences
        self.cipher = cipher or PasswordCipher()
        self.network = network

        self.address = ""
        # Plaintext WIF, or ciphertext when is_encrypted
        self.private_key = ""
        self.is_encrypted = False

    async def restore(self) -> str:
        """
        Load the previously saved address and key material.

        Raises:
            NoAddressError: If no address has been generated or imported
        """
        address = await self.preferences.get_address()
        if not address:
            raise NoAddressError()

        self.address = address
        self.private_key = await self.preferences.get_private_key()
        self.is_encrypted = await self.preferences.get_is_encrypted()
        logger.debug(f"Restored address {address} (encrypted={self.is_encrypted})")
        return address

    async def generate(self) -> str:
        """Create a new key pair, replacing the current one. Returns the address."""
        keypair = KeyPair.generate(self.network)
        await self._store_keypair(keypair)
        logger.info(f"Generated new address {keypair.address}")
        return keypair.address

    async def import_key(self, password: str, wif: str) -> str:
        """
        Replace the wallet key with an imported WIF key.

        An encrypted wallet can only be replaced by someone who knows its
        password, so the password is checked before the key is parsed.

        Raises:
            IncorrectPasswordError: If the current key is encrypted and the
                password does not decrypt it
            InvalidKeyError: If wif is not a valid private key
        """
        if not self.validate_password(password):
            raise IncorrectPasswordError()

        keypair = KeyPair.from_wif(wif, self.network)
        await self._store_keypair(keypair)
        logger.info(f"Imported address {keypair.address}")
        return keypair.address

    async def _store_keypair(self, keypair: KeyPair) -> None:
        wif = keypair.to_wif()
        await self.preferences.commit(
            address=keypair.address,
            private_key=wif,
            is_encrypted=False,
            last_balance=0,
        )
        self.address = keypair.address
        self.private_key = wif
        self.is_encrypted = False

    def validate_password(self, password: str) -> bool:
        """Check the password. Always true for an unencrypted key."""
        if not self.is_encrypted:
            return True
        return self.decrypt(password) is not None

    def decrypt(self, password: str) -> str | None:
        """
        Return the plaintext private key.

        Returns the key unchanged when unencrypted, None when the password
        is wrong or the stored ciphertext cannot be decrypted.
        """
        if not self.is_encrypted:
            return self.private_key
        try:
            plaintext = self.cipher.decrypt(self.private_key, password)
        except CipherError:
            return None
        return plaintext or None

    def keypair(self, password: str) -> KeyPair:
        """
        Decrypt and parse the private key for signing.

        Raises:
            IncorrectPasswordError: If the password does not decrypt the key
        """
        plaintext = self.decrypt(password)
        if not plaintext:
            raise IncorrectPasswordError()
        return KeyPair.from_wif(plaintext, self.network)

    async def update_password(self, password: str, new_password: str) -> None:
        """
        Change the password protecting the private key.

        An empty new password stores the key as plaintext. The key and the
        encryption flag are persisted together; on failure neither the store
        nor the in-memory state changes and the store's error propagates.

        Raises:
            IncorrectPasswordError: If password does not decrypt the current key
        """
        plaintext = self.decrypt(password)
        if not plaintext:
            raise IncorrectPasswordError()

        if new_password:
            private_key = self.cipher.encrypt(plaintext, new_password)
            is_encrypted = True
        else:
            private_key = plaintext
            is_encrypted = False

        await self.preferences.commit(is_encrypted=is_encrypted, private_key=private_key)
        self.private_key = private_key
        self.is_encrypted = is_encrypted
        logger.info(f"Private key {'encrypted' if is_encrypted else 'stored unencrypted'}")
