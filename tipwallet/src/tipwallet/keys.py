"""
Key pair handling: generation, WIF import/export, and address derivation.

The wallet uses a single legacy (P2PKH) address derived from its key.
"""

from __future__ import annotations

import hashlib
import secrets

import base58
from coincurve import PrivateKey

from tipwallet.errors import InvalidKeyError

# Base58check version bytes per network
WIF_VERSIONS = {"mainnet": 0x80, "testnet": 0xEF}
P2PKH_VERSIONS = {"mainnet": 0x00, "testnet": 0x6F}
P2SH_VERSIONS = {"mainnet": 0x05, "testnet": 0xC4}
BECH32_HRPS = {"mainnet": "bc", "testnet": "tb"}

# Suffix marking a WIF key whose public key is used in compressed form
COMPRESSED_SUFFIX = 0x01


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def p2pkh_script(pubkey_hash: bytes) -> bytes:
    """OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG"""
    return bytes([0x76, 0xA9, 0x14]) + pubkey_hash + bytes([0x88, 0xAC])


def address_to_scriptpubkey(address: str) -> bytes:
    """
    Convert a Bitcoin address to scriptPubKey.

    Supports:
    - P2PKH (1..., m..., n...)
    - P2SH (3..., 2...)
    - P2WPKH / P2WSH (bc1q..., tb1q...)
    - P2TR (bc1p..., tb1p...)

    Raises:
        ValueError: If the address cannot be decoded
    """
    import bech32

    if address.lower().startswith(("bc1", "tb1")):
        hrp = address[:2].lower()
        witver, witprog = bech32.decode(hrp, address)
        if witver is None or witprog is None:
            raise ValueError(f"Invalid bech32 address: {address}")

        program = bytes(witprog)
        if witver == 0 and len(program) in (20, 32):
            return bytes([0x00, len(program)]) + program
        if witver == 1 and len(program) == 32:
            return bytes([0x51, 0x20]) + program
        raise ValueError(f"Unsupported witness version: {witver}")

    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise ValueError(f"Invalid address: {address}") from e

    if len(decoded) != 21:
        raise ValueError(f"Invalid address length: {address}")

    version, payload = decoded[0], decoded[1:]
    if version in P2PKH_VERSIONS.values():
        return p2pkh_script(payload)
    if version in P2SH_VERSIONS.values():
        # OP_HASH160 <20-byte-scripthash> OP_EQUAL
        return bytes([0xA9, 0x14]) + payload + bytes([0x87])

    raise ValueError(f"Unknown address version: {version}")


class KeyPair:
    """
    A secp256k1 key pair bound to a network.

    Keys imported from uncompressed WIF keep using the uncompressed public key,
    otherwise the derived address would not match the one the key was
    exported from.
    """

    def __init__(
        self,
        private_key: PrivateKey,
        compressed: bool = True,
        network: str = "mainnet",
    ):
        if network not in WIF_VERSIONS:
            raise ValueError(f"Unknown network: {network}")
        self._private_key = private_key
        self.compressed = compressed
        self.network = network

    @classmethod
    def generate(cls, network: str = "mainnet") -> KeyPair:
        """Create a random key pair."""
        return cls(PrivateKey(secrets.token_bytes(32)), compressed=True, network=network)

    @classmethod
    def from_wif(cls, wif: str, network: str = "mainnet") -> KeyPair:
        """
        Parse a WIF-encoded private key.

        Raises:
            InvalidKeyError: If the key is malformed or belongs to another network
        """
        try:
            payload = base58.b58decode_check(wif.strip())
        except (ValueError, AttributeError) as e:
            raise InvalidKeyError() from e

        if len(payload) == 34 and payload[-1] == COMPRESSED_SUFFIX:
            compressed = True
            secret = payload[1:33]
        elif len(payload) == 33:
            compressed = False
            secret = payload[1:]
        else:
            raise InvalidKeyError()

        if payload[0] != WIF_VERSIONS.get(network):
            raise InvalidKeyError(f"Invalid private key for {network}")

        try:
            private_key = PrivateKey(secret)
        except (ValueError, TypeError) as e:
            raise InvalidKeyError() from e

        return cls(private_key, compressed=compressed, network=network)

    def to_wif(self) -> str:
        """Export the private key in wallet import format."""
        payload = bytes([WIF_VERSIONS[self.network]]) + self._private_key.secret
        if self.compressed:
            payload += bytes([COMPRESSED_SUFFIX])
        return base58.b58encode_check(payload).decode("ascii")

    @property
    def public_key_bytes(self) -> bytes:
        return self._private_key.public_key.format(compressed=self.compressed)

    @property
    def pubkey_hash(self) -> bytes:
        return hash160(self.public_key_bytes)

    @property
    def address(self) -> str:
        """Legacy P2PKH address of this key."""
        payload = bytes([P2PKH_VERSIONS[self.network]]) + self.pubkey_hash
        return base58.b58encode_check(payload).decode("ascii")

    @property
    def script_pubkey(self) -> bytes:
        return p2pkh_script(self.pubkey_hash)

    def sign_digest(self, digest: bytes) -> bytes:
        """Sign a 32-byte digest. Returns a DER-encoded low-S signature."""
        # digest is already SHA256d, so skip coincurve's hashing
        return self._private_key.sign(digest, hasher=None)
