"""
BIP32 HD key derivation.
Implements BIP84 (Native SegWit) derivation paths.

Private key and chain code bytes live in mutable buffers so they can be
zeroed as soon as a derivation or signing operation is finished. Callers
should use HDKey as a context manager (or call wipe()) rather than relying
on garbage collection.
"""

from __future__ import annotations

import hashlib
import hmac

from coincurve import PrivateKey
from mnemonic import Mnemonic

from btcwallet.constants import HARDENED_OFFSET
from btcwallet.models import NetworkParams, NetworkType

# secp256k1 curve order
SECP256K1_N = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)


def zeroize(buf: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    for i in range(len(buf)):
        buf[i] = 0


def parse_path(path: str) -> list[int]:
    """
    Parse path notation (e.g. "m/84'/0'/0'/0/0") into child indices.
    ' or h indicates hardened derivation.
    """
    if not path.startswith("m"):
        raise ValueError("Path must start with 'm'")

    indices: list[int] = []
    for part in path.split("/")[1:]:
        if not part:
            raise ValueError(f"Empty path component in {path!r}")

        hardened = part.endswith("'") or part.endswith("h")
        index_str = part[:-1] if hardened else part
        if not index_str.isdigit():
            raise ValueError(f"Invalid path component {part!r}")

        index = int(index_str)
        if index >= HARDENED_OFFSET:
            raise ValueError(f"Path index out of range: {part!r}")
        if hardened:
            index += HARDENED_OFFSET
        indices.append(index)

    return indices


class HDKey:
    """
    Hierarchical Deterministic Key for Bitcoin.
    Implements BIP32 private derivation.
    """

    def __init__(self, secret: bytes | bytearray, chain_code: bytes | bytearray, depth: int = 0):
        self._secret = bytearray(secret)
        self._chain_code = bytearray(chain_code)
        self.depth = depth
        self._wiped = False
        self._public_key = PrivateKey(bytes(self._secret)).public_key.format(compressed=True)

    def __enter__(self) -> HDKey:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.wipe()

    @classmethod
    def from_seed(cls, seed: bytes | bytearray) -> HDKey:
        """Create master HD key from seed"""
        hmac_result = bytearray(hmac.new(b"Bitcoin seed", bytes(seed), hashlib.sha512).digest())
        key_bytes = hmac_result[:32]
        chain_code = hmac_result[32:]
        try:
            key_int = int.from_bytes(key_bytes, "big")
            if key_int == 0 or key_int >= SECP256K1_N:
                raise ValueError("Invalid master key")
            return cls(key_bytes, chain_code, depth=0)
        finally:
            zeroize(hmac_result)
            zeroize(key_bytes)
            zeroize(chain_code)

    @property
    def wiped(self) -> bool:
        return self._wiped

    @property
    def chain_code(self) -> bytes:
        self._check_alive()
        return bytes(self._chain_code)

    def derive(self, path: str) -> HDKey:
        """
        Derive child key from path notation (e.g., "m/84'/0'/0'/0/0").

        Intermediate nodes are wiped as soon as their child exists; the
        caller owns (and must wipe) the returned key.
        """
        self._check_alive()
        indices = parse_path(path)
        key = self

        try:
            for index in indices:
                child = key._derive_child(index)
                if key is not self:
                    key.wipe()
                key = child
        except Exception:
            if key is not self:
                key.wipe()
            raise

        if key is self:
            # "m" alone: hand out an independent copy so wiping it leaves self intact
            return HDKey(self._secret, self._chain_code, depth=self.depth)
        return key

    def _derive_child(self, index: int) -> HDKey:
        """Derive a child key at the given index"""
        if index >= HARDENED_OFFSET:
            data = bytearray(b"\x00") + self._secret + index.to_bytes(4, "big")
        else:
            data = bytearray(self._public_key + index.to_bytes(4, "big"))

        digest = hmac.new(bytes(self._chain_code), bytes(data), hashlib.sha512).digest()
        hmac_result = bytearray(digest)
        zeroize(data)

        try:
            offset_int = int.from_bytes(hmac_result[:32], "big")
            if offset_int >= SECP256K1_N:
                raise ValueError(f"Invalid child key at index {index}")

            parent_key_int = int.from_bytes(self._secret, "big")
            child_key_int = (parent_key_int + offset_int) % SECP256K1_N
            if child_key_int == 0:
                raise ValueError(f"Invalid child key at index {index}")

            child_secret = bytearray(child_key_int.to_bytes(32, "big"))
            child_chain = hmac_result[32:]
            try:
                return HDKey(child_secret, child_chain, depth=self.depth + 1)
            finally:
                zeroize(child_secret)
                zeroize(child_chain)
        finally:
            zeroize(hmac_result)

    def get_public_key_bytes(self) -> bytes:
        """Get compressed public key bytes (33 bytes)"""
        return self._public_key

    def get_address(
        self, network: NetworkType | NetworkParams | str = NetworkType.MAINNET
    ) -> str:
        """Get P2WPKH (Native SegWit) address for this key"""
        from btcwallet.wallet.address import pubkey_to_p2wpkh_address

        return pubkey_to_p2wpkh_address(self._public_key, network)

    def sign_digest(self, digest: bytes) -> bytes:
        """Sign a 32-byte pre-hashed digest. Returns a low-S DER signature."""
        self._check_alive()
        if len(digest) != 32:
            raise ValueError(f"Digest must be 32 bytes, got {len(digest)}")
        return PrivateKey(bytes(self._secret)).sign(digest, hasher=None)

    def wipe(self) -> None:
        """Zero the private key and chain code buffers."""
        zeroize(self._secret)
        zeroize(self._chain_code)
        self._wiped = True

    def _check_alive(self) -> None:
        if self._wiped:
            raise RuntimeError("HDKey has been wiped")


def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytearray:
    """Convert BIP39 mnemonic to a 64-byte seed (PBKDF2-HMAC-SHA512, 2048 rounds)."""
    return bytearray(Mnemonic.to_seed(mnemonic, passphrase))
