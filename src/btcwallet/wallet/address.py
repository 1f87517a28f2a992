"""
Bitcoin address generation and decoding utilities.
"""

from __future__ import annotations

import hashlib

import base58
import bech32

from btcwallet.errors import InvalidAddress
from btcwallet.models import NetworkParams, NetworkType, get_network_params

KNOWN_SEGWIT_HRPS = ("bc", "tb", "bcrt")


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def pubkey_to_p2wpkh_script(pubkey_bytes: bytes) -> bytes:
    """Create P2WPKH scriptPubKey (OP_0 <20-byte-hash>)"""
    if len(pubkey_bytes) != 33:
        raise ValueError(f"Invalid compressed pubkey length: {len(pubkey_bytes)}")
    return bytes([0x00, 0x14]) + hash160(pubkey_bytes)


def pubkey_to_p2wpkh_address(
    pubkey_bytes: bytes, network: NetworkType | NetworkParams | str = NetworkType.MAINNET
) -> str:
    """
    Convert compressed public key to P2WPKH (native segwit) address.
    BIP173 bech32 encoding.
    """
    params = get_network_params(network)
    script = pubkey_to_p2wpkh_script(pubkey_bytes)
    address = bech32.encode(params.hrp, 0, script[2:])
    if address is None:
        raise ValueError(f"Failed to encode P2WPKH address for {pubkey_bytes.hex()}")
    return address


def script_to_address(script: bytes, network: NetworkType | NetworkParams | str) -> str:
    """Convert a segwit scriptPubKey (v0 P2WPKH/P2WSH or v1 P2TR) to an address."""
    params = get_network_params(network)

    if len(script) == 22 and script[0] == 0x00 and script[1] == 0x14:
        witver, program = 0, script[2:]
    elif len(script) == 34 and script[0] == 0x00 and script[1] == 0x20:
        witver, program = 0, script[2:]
    elif len(script) == 34 and script[0] == 0x51 and script[1] == 0x20:
        witver, program = 1, script[2:]
    else:
        raise ValueError(f"Unsupported scriptPubKey: {script.hex()}")

    address = bech32.encode(params.hrp, witver, program)
    if address is None:
        raise ValueError(f"Failed to encode address for script {script.hex()}")
    return address


def decode_address(address: str, network: NetworkType | NetworkParams | str) -> bytes:
    """
    Decode an address for the given network into its scriptPubKey.

    Supports:
    - P2WPKH / P2WSH (bech32, witness v0)
    - P2TR (bech32m, witness v1)
    - P2PKH / P2SH (base58check)

    Raises:
        InvalidAddress: malformed, or encoded for a different network
    """
    params = get_network_params(network)
    net_name = params.network.value
    address = address.strip()

    if not address:
        raise InvalidAddress(address, net_name, "empty address")

    lowered = address.lower()
    if lowered.startswith(params.hrp + "1"):
        return _decode_segwit(address, params)

    if any(lowered.startswith(hrp + "1") for hrp in KNOWN_SEGWIT_HRPS):
        raise InvalidAddress(address, net_name, "segwit address for a different network")

    return _decode_base58(address, params)


def _decode_segwit(address: str, params: NetworkParams) -> bytes:
    net_name = params.network.value
    witver, witprog = bech32.decode(params.hrp, address)
    if witver is None or witprog is None:
        raise InvalidAddress(address, net_name, "bad bech32 encoding or checksum")

    program = bytes(witprog)
    if witver == 0:
        if len(program) == 20:
            return bytes([0x00, 0x14]) + program
        if len(program) == 32:
            return bytes([0x00, 0x20]) + program
        raise InvalidAddress(address, net_name, f"bad v0 program length {len(program)}")
    if witver == 1 and len(program) == 32:
        return bytes([0x51, 0x20]) + program

    raise InvalidAddress(address, net_name, f"unsupported witness version {witver}")


def _decode_base58(address: str, params: NetworkParams) -> bytes:
    net_name = params.network.value
    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise InvalidAddress(address, net_name, f"bad base58check encoding ({e})") from e

    if len(decoded) != 21:
        raise InvalidAddress(address, net_name, f"bad payload length {len(decoded) - 1}")

    version = decoded[0]
    payload = decoded[1:]

    if version == params.p2pkh_version:
        # OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG
        return bytes([0x76, 0xA9, 0x14]) + payload + bytes([0x88, 0xAC])
    if version == params.p2sh_version:
        # OP_HASH160 <20-byte-scripthash> OP_EQUAL
        return bytes([0xA9, 0x14]) + payload + bytes([0x87])

    raise InvalidAddress(address, net_name, f"version byte {version:#04x} not valid here")


def is_valid_address(address: str, network: NetworkType | NetworkParams | str) -> bool:
    try:
        decode_address(address, network)
    except InvalidAddress:
        return False
    return True
