"""
Legacy (non-segwit) Bitcoin transaction building and signing.

The wallet spends P2PKH outputs of its single key, so every input is signed
with SIGHASH_ALL over the original (pre-BIP143) signature hash.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field

from tipwallet.keys import KeyPair, address_to_scriptpubkey

SIGHASH_ALL = 0x01
DEFAULT_SEQUENCE = 0xFFFFFFFF


class TransactionError(Exception):
    pass


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def varint(n: int) -> bytes:
    """Encode integer as Bitcoin varint."""
    if n < 0xFD:
        return bytes([n])
    elif n <= 0xFFFF:
        return bytes([0xFD]) + struct.pack("<H", n)
    elif n <= 0xFFFFFFFF:
        return bytes([0xFE]) + struct.pack("<I", n)
    else:
        return bytes([0xFF]) + struct.pack("<Q", n)


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Read varint at offset. Returns (value, new_offset)."""
    first = data[offset]
    offset += 1

    if first < 0xFD:
        return first, offset
    if first == 0xFD:
        return struct.unpack("<H", data[offset : offset + 2])[0], offset + 2
    if first == 0xFE:
        return struct.unpack("<I", data[offset : offset + 4])[0], offset + 4
    return struct.unpack("<Q", data[offset : offset + 8])[0], offset + 8


def push_data(data: bytes) -> bytes:
    """Script push of up to 75 bytes (signatures and public keys)."""
    if len(data) > 75:
        raise TransactionError(f"Push of {len(data)} bytes not supported")
    return bytes([len(data)]) + data


@dataclass
class TxInput:
    """Transaction input spending a previous output."""

    tx_hash: str
    output_index: int
    value: int = 0
    script_pubkey: bytes = b""  # script of the output being spent
    script_sig: bytes = b""
    sequence: int = DEFAULT_SEQUENCE

    def serialize(self, script: bytes | None = None) -> bytes:
        # txid is in RPC format (big-endian), reversed for the raw tx
        result = bytes.fromhex(self.tx_hash)[::-1]
        result += struct.pack("<I", self.output_index)
        script = self.script_sig if script is None else script
        result += varint(len(script)) + script
        result += struct.pack("<I", self.sequence)
        return result


@dataclass
class TxOutput:
    """Transaction output."""

    value: int
    script_pubkey: bytes

    def serialize(self) -> bytes:
        return struct.pack("<Q", self.value) + varint(len(self.script_pubkey)) + self.script_pubkey


@dataclass
class Transaction:
    inputs: list[TxInput] = field(default_factory=list)
    outputs: list[TxOutput] = field(default_factory=list)
    version: int = 1
    locktime: int = 0

    def add_input(
        self, tx_hash: str, output_index: int, value: int = 0, script_pubkey: bytes = b""
    ) -> int:
        """Append an input. Returns its index."""
        self.inputs.append(TxInput(tx_hash, output_index, value, script_pubkey))
        return len(self.inputs) - 1

    def add_output(self, address: str, value: int) -> int:
        """Append an output paying value satoshis to address. Returns its index."""
        if value < 0:
            raise TransactionError(f"Negative output value: {value}")
        self.outputs.append(TxOutput(value, address_to_scriptpubkey(address)))
        return len(self.outputs) - 1

    @property
    def total_input_value(self) -> int:
        return sum(inp.value for inp in self.inputs)

    @property
    def total_output_value(self) -> int:
        return sum(out.value for out in self.outputs)

    def _serialize(self, scripts: list[bytes]) -> bytes:
        result = struct.pack("<I", self.version)
        result += varint(len(self.inputs))
        for inp, script in zip(self.inputs, scripts, strict=True):
            result += inp.serialize(script)
        result += varint(len(self.outputs))
        for out in self.outputs:
            result += out.serialize()
        result += struct.pack("<I", self.locktime)
        return result

    def serialize(self) -> bytes:
        return self._serialize([inp.script_sig for inp in self.inputs])

    def to_hex(self) -> str:
        return self.serialize().hex()

    @property
    def txid(self) -> str:
        return hash256(self.serialize())[::-1].hex()

    def signature_hash(self, input_index: int, sighash_type: int = SIGHASH_ALL) -> bytes:
        """
        Legacy signature hash for one input.

        The input being signed carries the script of the output it spends,
        every other input an empty script.
        """
        if input_index >= len(self.inputs):
            raise TransactionError("Input index out of range")
        if sighash_type != SIGHASH_ALL:
            raise TransactionError(f"Unsupported sighash type: {sighash_type}")

        scripts = [
            inp.script_pubkey if i == input_index else b"" for i, inp in enumerate(self.inputs)
        ]
        preimage = self._serialize(scripts) + struct.pack("<I", sighash_type)
        return hash256(preimage)

    def sign_input(self, input_index: int, keypair: KeyPair) -> None:
        """Sign a P2PKH input and set its scriptSig to <sig> <pubkey>."""
        inp = self.inputs[input_index]
        if not inp.script_pubkey:
            inp.script_pubkey = keypair.script_pubkey

        sighash = self.signature_hash(input_index, SIGHASH_ALL)
        signature = keypair.sign_digest(sighash) + bytes([SIGHASH_ALL])
        inp.script_sig = push_data(signature) + push_data(keypair.public_key_bytes)


def deserialize_transaction(raw: bytes) -> Transaction:
    """Parse a legacy transaction. Input values and spent scripts are unknown."""
    try:
        offset = 0
        version = struct.unpack("<I", raw[offset : offset + 4])[0]
        offset += 4

        input_count, offset = read_varint(raw, offset)
        inputs: list[TxInput] = []
        for _ in range(input_count):
            tx_hash = raw[offset : offset + 32][::-1].hex()
            offset += 32
            output_index = struct.unpack("<I", raw[offset : offset + 4])[0]
            offset += 4
            script_len, offset = read_varint(raw, offset)
            script_sig = raw[offset : offset + script_len]
            offset += script_len
            sequence = struct.unpack("<I", raw[offset : offset + 4])[0]
            offset += 4
            inputs.append(
                TxInput(tx_hash, output_index, script_sig=script_sig, sequence=sequence)
            )

        output_count, offset = read_varint(raw, offset)
        outputs: list[TxOutput] = []
        for _ in range(output_count):
            value = struct.unpack("<Q", raw[offset : offset + 8])[0]
            offset += 8
            script_len, offset = read_varint(raw, offset)
            outputs.append(TxOutput(value, raw[offset : offset + script_len]))
            offset += script_len

        locktime = struct.unpack("<I", raw[offset : offset + 4])[0]
        offset += 4
        if offset != len(raw):
            raise TransactionError(f"{len(raw) - offset} trailing bytes")

        return Transaction(inputs, outputs, version, locktime)

    except (IndexError, struct.error) as e:
        raise TransactionError(f"Failed to parse transaction: {e}") from e
