"""
Bitcoin transaction signing utilities for P2WPKH inputs.
"""

from __future__ import annotations

import struct

from btcwallet.wallet.address import hash160
from btcwallet.wallet.bip32 import HDKey
from btcwallet.wallet.transaction import (
    Transaction,
    encode_varint,
    hash256,
    serialize_outpoint,
    serialize_output,
)

SIGHASH_ALL = 1


class TransactionSigningError(Exception):
    pass


def compute_sighash_segwit(
    tx: Transaction,
    input_index: int,
    script_code: bytes,
    value: int,
    sighash_type: int = SIGHASH_ALL,
) -> bytes:
    """Compute the BIP143 signature hash for a segwit v0 input."""
    if input_index >= len(tx.inputs):
        raise TransactionSigningError("Input index out of range")

    hash_prevouts = hash256(b"".join(serialize_outpoint(i.txid, i.vout) for i in tx.inputs))
    hash_sequence = hash256(b"".join(struct.pack("<I", i.sequence) for i in tx.inputs))
    hash_outputs = hash256(b"".join(serialize_output(out) for out in tx.outputs))

    target_input = tx.inputs[input_index]

    preimage = (
        struct.pack("<I", tx.version)
        + hash_prevouts
        + hash_sequence
        + serialize_outpoint(target_input.txid, target_input.vout)
        + encode_varint(len(script_code))
        + script_code
        + value.to_bytes(8, "little")
        + struct.pack("<I", target_input.sequence)
        + hash_outputs
        + struct.pack("<I", tx.locktime)
        + sighash_type.to_bytes(4, "little")
    )

    return hash256(preimage)


def create_p2wpkh_script_code(pubkey_bytes: bytes) -> bytes:
    """Create the scriptCode for P2WPKH signing (BIP 143).

    For P2WPKH, the scriptCode is the P2PKH script:
    OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG
    """
    return b"\x76\xa9\x14" + hash160(pubkey_bytes) + b"\x88\xac"


def sign_p2wpkh_input(
    tx: Transaction,
    input_index: int,
    key: HDKey,
    sighash_type: int = SIGHASH_ALL,
) -> list[bytes]:
    """Sign a P2WPKH input and attach its witness.

    Args:
        tx: The transaction being signed (input values must be set)
        input_index: Index of the input to sign
        key: Key owning the spent output
        sighash_type: Sighash type (default SIGHASH_ALL = 1)

    Returns:
        The witness stack [signature, pubkey] now attached to the input
    """
    inp = tx.inputs[input_index]
    if inp.value <= 0:
        raise TransactionSigningError(f"Input {input_index} has no value for BIP143")

    pubkey = key.get_public_key_bytes()
    script_code = create_p2wpkh_script_code(pubkey)
    sighash = compute_sighash_segwit(tx, input_index, script_code, inp.value, sighash_type)

    signature = key.sign_digest(sighash) + bytes([sighash_type])
    inp.witness = [signature, pubkey]
    return inp.witness
