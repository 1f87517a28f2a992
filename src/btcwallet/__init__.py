"""
btcwallet - Non-custodial BIP84 Bitcoin wallet engine

Derives native segwit addresses from a recovery phrase, queries redundant
Esplora providers with ordered failover, and builds, signs and broadcasts
P2WPKH transactions.
"""

__version__ = "0.1.0"

from btcwallet.constants import DEFAULT_FEE_RATE, STANDARD_DUST_LIMIT
from btcwallet.errors import (
    AllProvidersFailed,
    BroadcastRejected,
    DerivationFailure,
    InsufficientFunds,
    InvalidAddress,
    InvalidPhrase,
    ProviderFailure,
    WalletError,
)
from btcwallet.models import (
    NetworkParams,
    NetworkType,
    ProviderEndpoint,
    ProviderRole,
    get_default_indexers,
    get_network_params,
)

__all__ = [
    "AllProvidersFailed",
    "BroadcastRejected",
    "DEFAULT_FEE_RATE",
    "DerivationFailure",
    "InsufficientFunds",
    "InvalidAddress",
    "InvalidPhrase",
    "NetworkParams",
    "NetworkType",
    "ProviderEndpoint",
    "ProviderFailure",
    "ProviderRole",
    "STANDARD_DUST_LIMIT",
    "WalletError",
    "get_default_indexers",
    "get_network_params",
]
