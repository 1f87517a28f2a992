"""
Chain data and broadcast over Esplora-compatible REST providers.

- ChainDataGateway: balances, UTXOs, tip height, tx status, fee estimates
- Broadcaster: raw transaction submission
Both try providers strictly in order and fall back to the next on failure.
"""

from btcwallet.backends.base import (
    UTXO,
    AddressBalance,
    AggregateBalance,
    FeeEstimates,
    TransactionStatus,
)
from btcwallet.backends.broadcast import Broadcaster
from btcwallet.backends.failover import FailoverExhausted, FailoverSuccess, try_providers, unwrap
from btcwallet.backends.gateway import ChainDataGateway

__all__ = [
    "AddressBalance",
    "AggregateBalance",
    "Broadcaster",
    "ChainDataGateway",
    "FailoverExhausted",
    "FailoverSuccess",
    "FeeEstimates",
    "TransactionStatus",
    "UTXO",
    "try_providers",
    "unwrap",
]
