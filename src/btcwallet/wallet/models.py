"""
Wallet data models.
"""

from __future__ import annotations

from dataclasses import dataclass

from btcwallet.backends.base import UTXO
from btcwallet.constants import CHANGE_CHAIN, RECEIVE_CHAIN


@dataclass(frozen=True)
class AddressRecord:
    """A derived wallet address and where it came from."""

    address: str
    path: str  # m/84'/{coin_type}'/{account}'/{chain}/{index}
    index: int
    is_change: bool

    @property
    def chain(self) -> int:
        return CHANGE_CHAIN if self.is_change else RECEIVE_CHAIN

    @property
    def short_path(self) -> str:
        """Get shortened path for display (e.g., m/84'/0'/0'/0/5 -> 0/5)."""
        return f"{self.chain}/{self.index}"


@dataclass(frozen=True)
class AccountInfo:
    """Deterministic batch of receive and change addresses for one account."""

    account_index: int
    network: str
    addresses: tuple[AddressRecord, ...]

    @property
    def receive_addresses(self) -> list[AddressRecord]:
        return [a for a in self.addresses if not a.is_change]

    @property
    def change_addresses(self) -> list[AddressRecord]:
        return [a for a in self.addresses if a.is_change]

    @property
    def address_strings(self) -> list[str]:
        return [a.address for a in self.addresses]

    def find(self, address: str) -> AddressRecord | None:
        for record in self.addresses:
            if record.address == address:
                return record
        return None


@dataclass(frozen=True)
class SpendableUTXO:
    """UTXO with the AddressRecord that owns it, captured when the UTXO was fetched."""

    utxo: UTXO
    record: AddressRecord

    @property
    def value(self) -> int:
        return self.utxo.value

    @property
    def txid(self) -> str:
        return self.utxo.txid

    @property
    def vout(self) -> int:
        return self.utxo.vout

    @property
    def outpoint(self) -> str:
        return self.utxo.outpoint


@dataclass(frozen=True)
class CoinSelection:
    """Result of coin selection"""

    utxos: list
    total_value: int
    change_value: int  # 0 when change is dropped as dust
    fee: int

    @property
    def has_change(self) -> bool:
        return self.change_value > 0

    @property
    def output_count(self) -> int:
        return 2 if self.has_change else 1


@dataclass(frozen=True)
class SignedTransaction:
    """A finalized, serialized transaction ready for broadcast."""

    tx_hex: str
    txid: str
    vsize: int
    fee: int
    amount: int
    change_value: int
    input_count: int
    output_count: int

    @property
    def fee_rate(self) -> float:
        """Effective fee rate in sat/vB measured on the final transaction."""
        return self.fee / self.vsize if self.vsize else 0.0
