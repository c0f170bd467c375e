"""
Password-based AES encryption of the private key.

Ciphertexts are AES-256-CBC with PKCS7 padding, keyed from the password and
a random 8-byte salt with OpenSSL's EVP_BytesToKey (MD5). This is the
passphrase mode used by the browser extension the wallet data comes from,
so previously persisted keys stay readable.

Two serializations exist and one is chosen when the cipher is built:
- "openssl": base64 of b"Salted__" + salt + ciphertext
- "json": {"ct": <hex>, "iv": <hex>, "s": <hex salt>}
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import os
from abc import ABC, abstractmethod

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

SALT_SIZE = 8
KEY_SIZE = 32
IV_SIZE = 16
OPENSSL_MAGIC = b"Salted__"


class CipherError(Exception):
    """Ciphertext could not be parsed or decrypted."""

    pass


def evp_bytes_to_key(password: bytes, salt: bytes) -> tuple[bytes, bytes]:
    """Derive (key, iv) from password and salt with a single MD5 iteration."""
    derived = b""
    block = b""
    while len(derived) < KEY_SIZE + IV_SIZE:
        block = hashlib.md5(block + password + salt).digest()
        derived += block
    return derived[:KEY_SIZE], derived[KEY_SIZE : KEY_SIZE + IV_SIZE]


class CipherFormat(ABC):
    """Serialization of (salt, iv, ciphertext) into a storable string."""

    name: str

    @abstractmethod
    def stringify(self, ciphertext: bytes, salt: bytes, iv: bytes) -> str:
        """Serialize encryption output."""

    @abstractmethod
    def parse(self, blob: str) -> tuple[bytes, bytes]:
        """Return (ciphertext, salt). Raises CipherError on malformed input."""


class OpenSSLCipherFormat(CipherFormat):
    name = "openssl"

    def stringify(self, ciphertext: bytes, salt: bytes, iv: bytes) -> str:
        return base64.b64encode(OPENSSL_MAGIC + salt + ciphertext).decode("ascii")

    def parse(self, blob: str) -> tuple[bytes, bytes]:
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CipherError("Invalid base64 ciphertext") from e

        if not raw.startswith(OPENSSL_MAGIC):
            raise CipherError("Missing salt header")
        salt = raw[len(OPENSSL_MAGIC) : len(OPENSSL_MAGIC) + SALT_SIZE]
        if len(salt) != SALT_SIZE:
            raise CipherError("Truncated salt")
        return raw[len(OPENSSL_MAGIC) + SALT_SIZE :], salt


class JsonCipherFormat(CipherFormat):
    name = "json"

    def stringify(self, ciphertext: bytes, salt: bytes, iv: bytes) -> str:
        return json.dumps({"ct": ciphertext.hex(), "iv": iv.hex(), "s": salt.hex()})

    def parse(self, blob: str) -> tuple[bytes, bytes]:
        try:
            obj = json.loads(blob)
            ciphertext = bytes.fromhex(obj["ct"])
            salt = bytes.fromhex(obj["s"])
        except (ValueError, TypeError, KeyError) as e:
            raise CipherError("Invalid JSON ciphertext") from e
        # iv is stored for compatibility but always re-derived from the salt
        return ciphertext, salt


CIPHER_FORMATS: dict[str, type[CipherFormat]] = {
    OpenSSLCipherFormat.name: OpenSSLCipherFormat,
    JsonCipherFormat.name: JsonCipherFormat,
}


class PasswordCipher:
    """Encrypts and decrypts strings under a password."""

    def __init__(self, cipher_format: CipherFormat | None = None):
        self.format = cipher_format or OpenSSLCipherFormat()

    def encrypt(self, plaintext: str, password: str) -> str:
        salt = os.urandom(SALT_SIZE)
        key, iv = evp_bytes_to_key(password.encode("utf-8"), salt)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return self.format.stringify(ciphertext, salt, iv)

    def decrypt(self, blob: str, password: str) -> str:
        """
        Decrypt a blob produced by encrypt().

        Raises:
            CipherError: On malformed blobs, wrong passwords (bad padding)
                and results that are not valid UTF-8
        """
        ciphertext, salt = self.format.parse(blob)
        if not ciphertext or len(ciphertext) % IV_SIZE:
            raise CipherError("Ciphertext length is not a multiple of the block size")

        key, iv = evp_bytes_to_key(password.encode("utf-8"), salt)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except ValueError as e:
            # UnicodeDecodeError is a ValueError too
            raise CipherError("Decryption failed") from e


def cipher_for(format_name: str) -> PasswordCipher:
    """Build a PasswordCipher for a configured format name."""
    try:
        return PasswordCipher(CIPHER_FORMATS[format_name]())
    except KeyError:
        raise ValueError(f"Unknown cipher format: {format_name}") from None
