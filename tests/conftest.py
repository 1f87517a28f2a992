"""
Shared fixtures for btcwallet tests.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from btcwallet.backends.base import UTXO
from btcwallet.models import NetworkType
from btcwallet.wallet.derivation import derive_account
from btcwallet.wallet.models import AccountInfo, SpendableUTXO

# m/84'/0'/0'/0/0 for the test mnemonic (BIP84 test vector)
BIP84_FIRST_RECEIVE = "bc1qcr8te4kr609gcawutmrza0j4xv80jy8z306fyu"
BIP84_FIRST_RECEIVE_PUBKEY = "0330d54fd0dd420a6e5f8d3624f5f3482cae350f79d5f0753bf5beef9c2d91af3c"
BIP84_SECOND_RECEIVE = "bc1qnjg0jd8228aq7egyzacy8cys3knf9xvrerkf9g"
BIP84_FIRST_CHANGE = "bc1q8c6fshw2dlwun7ekn9qwf37cu2rn755upcp6el"


@pytest.fixture
def sample_mnemonic() -> str:
    """Test mnemonic (not for production use!)."""
    return (
        "abandon abandon abandon abandon abandon abandon "
        "abandon abandon abandon abandon abandon about"
    )


@pytest.fixture
def bad_checksum_mnemonic() -> str:
    """All words valid, checksum wrong."""
    return " ".join(["abandon"] * 12)


@pytest.fixture
def regtest_account(sample_mnemonic: str) -> AccountInfo:
    return derive_account(
        sample_mnemonic, receive_count=3, change_count=2, network=NetworkType.REGTEST
    )


@pytest.fixture
def make_spendable(regtest_account: AccountInfo) -> Callable[..., SpendableUTXO]:
    """Build a SpendableUTXO owned by one of the regtest account's receive addresses."""

    def _make(value: int, index: int = 0, vout: int = 0, txid_byte: int = 1) -> SpendableUTXO:
        record = regtest_account.receive_addresses[index]
        utxo = UTXO(
            txid=f"{txid_byte:02x}" * 32,
            vout=vout,
            value=value,
            address=record.address,
            confirmations=6,
            height=100,
        )
        return SpendableUTXO(utxo=utxo, record=record)

    return _make


def json_response(data: object, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code, content=json.dumps(data), headers={"Content-Type": "application/json"}
    )
