"""
Recovery phrase handling and BIP84 account derivation.

Derivation path: m/84'/{coin_type}'/{account}'/{chain}/{index}
- coin_type: 0 (mainnet), 1 (testnet, signet, regtest)
- chain: 0 (external/receive), 1 (internal/change)
- index: address index

No key material outlives the call that derived it: seeds and every node of
the key tree are zeroed before the functions here return or raise.
"""

from __future__ import annotations

import secrets
from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from mnemonic import Mnemonic

from btcwallet.constants import (
    BIP84_PURPOSE,
    CHANGE_CHAIN,
    DEFAULT_CHANGE_COUNT,
    DEFAULT_ENTROPY_BITS,
    DEFAULT_RECEIVE_COUNT,
    RECEIVE_CHAIN,
)
from btcwallet.errors import DerivationFailure, InvalidPhrase
from btcwallet.models import NetworkParams, NetworkType, get_network_params
from btcwallet.wallet.bip32 import HDKey, mnemonic_to_seed, zeroize
from btcwallet.wallet.models import AccountInfo, AddressRecord

_WORDLIST = Mnemonic("english")


def normalize_phrase(phrase: str) -> str:
    return " ".join(phrase.lower().split())


def validate_phrase(phrase: str) -> bool:
    """True iff phrase is a BIP39 English mnemonic with a valid checksum."""
    if not isinstance(phrase, str):
        return False
    try:
        return _WORDLIST.check(normalize_phrase(phrase))
    except (ValueError, LookupError):
        return False


def generate_phrase(strength: int = DEFAULT_ENTROPY_BITS) -> str:
    """
    Generate a BIP39 mnemonic from secure entropy.

    Args:
        strength: Entropy bits (128 -> 12 words, 256 -> 24 words)

    Returns:
        BIP39 mnemonic phrase with valid checksum
    """
    if strength not in (128, 160, 192, 224, 256):
        raise ValueError("strength must be one of 128, 160, 192, 224, 256")

    entropy = bytearray(secrets.token_bytes(strength // 8))
    try:
        return _WORDLIST.to_mnemonic(bytes(entropy))
    finally:
        zeroize(entropy)


def account_path(network: NetworkType | NetworkParams | str, account_index: int) -> str:
    params = get_network_params(network)
    return f"m/{BIP84_PURPOSE}'/{params.coin_type}'/{account_index}'"


def address_path(
    network: NetworkType | NetworkParams | str, account_index: int, chain: int, index: int
) -> str:
    return f"{account_path(network, account_index)}/{chain}/{index}"


@contextmanager
def _master_key(phrase: str, passphrase: str) -> Iterator[HDKey]:
    if not validate_phrase(phrase):
        raise InvalidPhrase()

    seed = mnemonic_to_seed(normalize_phrase(phrase), passphrase)
    try:
        master = HDKey.from_seed(seed)
    finally:
        zeroize(seed)

    with master:
        yield master


def derive_account(
    phrase: str,
    account_index: int = 0,
    receive_count: int = DEFAULT_RECEIVE_COUNT,
    change_count: int = DEFAULT_CHANGE_COUNT,
    network: NetworkType | NetworkParams | str = NetworkType.TESTNET,
    passphrase: str = "",
) -> AccountInfo:
    """
    Derive receive_count receive and change_count change P2WPKH addresses.

    Deterministic: the same (phrase, passphrase, network, account, chain,
    index) always yields the same AddressRecord.

    Raises:
        InvalidPhrase: phrase fails wordlist/checksum validation
    """
    if account_index < 0 or receive_count < 0 or change_count < 0:
        raise ValueError("account_index, receive_count and change_count must be non-negative")

    params = get_network_params(network)
    base_path = account_path(params, account_index)
    records: list[AddressRecord] = []

    with _master_key(phrase, passphrase) as master, master.derive(base_path) as account_key:
        for chain, count in ((RECEIVE_CHAIN, receive_count), (CHANGE_CHAIN, change_count)):
            with account_key.derive(f"m/{chain}") as chain_key:
                for index in range(count):
                    with chain_key.derive(f"m/{index}") as leaf:
                        address = leaf.get_address(params)
                    records.append(
                        AddressRecord(
                            address=address,
                            path=f"{base_path}/{chain}/{index}",
                            index=index,
                            is_change=chain == CHANGE_CHAIN,
                        )
                    )

    logger.debug(
        f"Derived account {account_index} on {params.network.value}: "
        f"{receive_count} receive, {change_count} change addresses"
    )

    return AccountInfo(
        account_index=account_index,
        network=params.network.value,
        addresses=tuple(records),
    )


@contextmanager
def derive_private_key_for_path(phrase: str, path: str, passphrase: str = "") -> Iterator[HDKey]:
    """
    Derive the signing key for path, scoped to the with-block.

    The key (and the seed and master key used to reach it) is wiped when the
    block exits, whether normally or by exception.

    Raises:
        InvalidPhrase: phrase fails validation
        DerivationFailure: path cannot be derived
    """
    with _master_key(phrase, passphrase) as master:
        try:
            key = master.derive(path)
        except ValueError as e:
            raise DerivationFailure(path, str(e)) from e

    with key:
        yield key
