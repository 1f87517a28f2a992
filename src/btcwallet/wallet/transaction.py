"""
Segwit transaction structure and wire serialization.
"""

from __future__ import annotations

import hashlib
import math
import struct
from dataclasses import dataclass, field


class TransactionParseError(Exception):
    pass


@dataclass
class TxInput:
    txid: str  # RPC (big-endian) hex
    vout: int
    value: int = 0  # value of the spent output, needed for BIP143
    script_sig: bytes = b""
    sequence: int = 0xFFFFFFFF
    witness: list[bytes] = field(default_factory=list)


@dataclass
class TxOutput:
    value: int
    script: bytes


@dataclass
class Transaction:
    inputs: list[TxInput]
    outputs: list[TxOutput]
    version: int = 2
    locktime: int = 0

    @property
    def has_witness(self) -> bool:
        return any(inp.witness for inp in self.inputs)

    def serialize(self, include_witness: bool = True) -> bytes:
        """Serialize to wire format (BIP144 when witness data is present)."""
        with_witness = include_witness and self.has_witness

        result = struct.pack("<I", self.version)
        if with_witness:
            result += bytes([0x00, 0x01])  # SegWit marker and flag

        result += encode_varint(len(self.inputs))
        for inp in self.inputs:
            result += serialize_outpoint(inp.txid, inp.vout)
            result += encode_varint(len(inp.script_sig)) + inp.script_sig
            result += struct.pack("<I", inp.sequence)

        result += encode_varint(len(self.outputs))
        for out in self.outputs:
            result += serialize_output(out)

        if with_witness:
            for inp in self.inputs:
                result += encode_varint(len(inp.witness))
                for item in inp.witness:
                    result += encode_varint(len(item)) + item

        result += struct.pack("<I", self.locktime)
        return result

    def to_hex(self) -> str:
        return self.serialize().hex()

    @property
    def txid(self) -> str:
        """Double SHA256 of the non-witness serialization, displayed reversed."""
        return hash256(self.serialize(include_witness=False))[::-1].hex()

    @property
    def weight(self) -> int:
        base_size = len(self.serialize(include_witness=False))
        total_size = len(self.serialize(include_witness=True))
        return base_size * 3 + total_size

    @property
    def vsize(self) -> int:
        return math.ceil(self.weight / 4)


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def encode_varint(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    first = data[offset]
    offset += 1

    if first < 0xFD:
        return first, offset
    if first == 0xFD:
        return int.from_bytes(data[offset : offset + 2], "little"), offset + 2
    if first == 0xFE:
        return int.from_bytes(data[offset : offset + 4], "little"), offset + 4
    return int.from_bytes(data[offset : offset + 8], "little"), offset + 8


def serialize_outpoint(txid: str, vout: int) -> bytes:
    """Serialize outpoint (txid:vout)."""
    # txid is in RPC format (big-endian), need to reverse for raw tx
    txid_bytes = bytes.fromhex(txid)[::-1]
    if len(txid_bytes) != 32:
        raise ValueError(f"Invalid txid length: {txid}")
    return txid_bytes + struct.pack("<I", vout)


def serialize_output(out: TxOutput) -> bytes:
    return struct.pack("<Q", out.value) + encode_varint(len(out.script)) + out.script


def deserialize_transaction(tx_bytes: bytes) -> Transaction:
    """Parse a raw (legacy or segwit) transaction. Input values are not known and set to 0."""
    try:
        offset = 0
        version = struct.unpack("<I", tx_bytes[offset : offset + 4])[0]
        offset += 4

        has_witness = False
        if tx_bytes[offset] == 0x00 and tx_bytes[offset + 1] == 0x01:
            has_witness = True
            offset += 2

        input_count, offset = read_varint(tx_bytes, offset)
        inputs: list[TxInput] = []
        for _ in range(input_count):
            txid = tx_bytes[offset : offset + 32][::-1].hex()
            offset += 32
            vout = struct.unpack("<I", tx_bytes[offset : offset + 4])[0]
            offset += 4
            script_len, offset = read_varint(tx_bytes, offset)
            script_sig = tx_bytes[offset : offset + script_len]
            offset += script_len
            sequence = struct.unpack("<I", tx_bytes[offset : offset + 4])[0]
            offset += 4
            inputs.append(TxInput(txid=txid, vout=vout, script_sig=script_sig, sequence=sequence))

        output_count, offset = read_varint(tx_bytes, offset)
        outputs: list[TxOutput] = []
        for _ in range(output_count):
            value = struct.unpack("<Q", tx_bytes[offset : offset + 8])[0]
            offset += 8
            script_len, offset = read_varint(tx_bytes, offset)
            outputs.append(TxOutput(value=value, script=tx_bytes[offset : offset + script_len]))
            offset += script_len

        if has_witness:
            for inp in inputs:
                stack_count, offset = read_varint(tx_bytes, offset)
                for _ in range(stack_count):
                    item_len, offset = read_varint(tx_bytes, offset)
                    inp.witness.append(tx_bytes[offset : offset + item_len])
                    offset += item_len

        locktime = struct.unpack("<I", tx_bytes[offset : offset + 4])[0]
        offset += 4
        if offset != len(tx_bytes):
            raise ValueError(f"{len(tx_bytes) - offset} trailing bytes")

        return Transaction(inputs=inputs, outputs=outputs, version=version, locktime=locktime)

    except (IndexError, struct.error, ValueError) as e:
        raise TransactionParseError(f"Failed to parse transaction: {e}") from e
