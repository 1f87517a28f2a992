"""
Chain data types returned by the provider gateway.

Every value is a snapshot of one query; re-fetching produces new objects
rather than mutating old ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class UTXO:
    txid: str
    vout: int
    value: int
    address: str
    confirmations: int
    height: int | None = None  # None while unconfirmed

    @property
    def confirmed(self) -> bool:
        return self.height is not None

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass(frozen=True)
class AddressBalance:
    address: str
    confirmed: int
    total_received: int
    total_sent: int
    tx_count: int


@dataclass(frozen=True)
class AggregateBalance:
    total_balance: int
    per_address: list[AddressBalance] = field(default_factory=list)
    failed_addresses: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_addresses


@dataclass(frozen=True)
class TransactionStatus:
    txid: str
    confirmed: bool
    block_height: int | None = None
    confirmations: int = 0


@dataclass(frozen=True)
class FeeEstimates:
    """Recommended fee rates in sat/vB."""

    fastest_fee: int
    half_hour_fee: int
    hour_fee: int
    economy_fee: int
    minimum_fee: int
