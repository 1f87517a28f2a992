"""
Core data models using Pydantic for validation and serialization.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from btcwallet.constants import COIN_TYPE_MAINNET, COIN_TYPE_TESTNET


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"


class NetworkParams(BaseModel):
    """Immutable per-network parameters passed to every network-dependent operation."""

    model_config = ConfigDict(frozen=True)

    network: NetworkType
    hrp: str
    coin_type: int = Field(..., ge=0)
    p2pkh_version: int
    p2sh_version: int

    @property
    def is_mainnet(self) -> bool:
        return self.network == NetworkType.MAINNET


_NETWORK_PARAMS: dict[NetworkType, NetworkParams] = {
    NetworkType.MAINNET: NetworkParams(
        network=NetworkType.MAINNET,
        hrp="bc",
        coin_type=COIN_TYPE_MAINNET,
        p2pkh_version=0x00,
        p2sh_version=0x05,
    ),
    NetworkType.TESTNET: NetworkParams(
        network=NetworkType.TESTNET,
        hrp="tb",
        coin_type=COIN_TYPE_TESTNET,
        p2pkh_version=0x6F,
        p2sh_version=0xC4,
    ),
    NetworkType.SIGNET: NetworkParams(
        network=NetworkType.SIGNET,
        hrp="tb",
        coin_type=COIN_TYPE_TESTNET,
        p2pkh_version=0x6F,
        p2sh_version=0xC4,
    ),
    NetworkType.REGTEST: NetworkParams(
        network=NetworkType.REGTEST,
        hrp="bcrt",
        coin_type=COIN_TYPE_TESTNET,
        p2pkh_version=0x6F,
        p2sh_version=0xC4,
    ),
}


def get_network_params(network: NetworkType | NetworkParams | str) -> NetworkParams:
    """Resolve a network name (or already-resolved params) to NetworkParams."""
    if isinstance(network, NetworkParams):
        return network
    return _NETWORK_PARAMS[NetworkType(network)]


# Default indexers for each network (Esplora-compatible REST APIs)
INDEXERS_MAINNET: list[str] = [
    "https://fulcrum.angor.online",
    "https://electrs.angor.online",
    "https://cyphermunkhouse.angor.online",
    "https://indexer.angor.fund",
]

INDEXERS_TESTNET: list[str] = [
    "https://signet.angor.online",
    "https://signet2.angor.online",
]

INDEXERS_REGTEST: list[str] = [
    "http://localhost:3000",
]


def get_default_indexers(network: NetworkType) -> list[str]:
    """Get default indexer URLs for a given network."""
    if network == NetworkType.MAINNET:
        return INDEXERS_MAINNET.copy()
    elif network in (NetworkType.TESTNET, NetworkType.SIGNET):
        return INDEXERS_TESTNET.copy()
    return INDEXERS_REGTEST.copy()


class ProviderRole(str, Enum):
    QUERY = "query"
    BROADCAST = "broadcast"


class ProviderEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1)
    role: ProviderRole = ProviderRole.QUERY

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Provider URL must be http(s): {v}")
        return v.rstrip("/")

    def __str__(self) -> str:
        return self.url


def coerce_providers(
    providers: Iterable[ProviderEndpoint | str], role: ProviderRole
) -> list[ProviderEndpoint]:
    """
    Normalize a provider list for an operation of the given role.

    Plain URL strings take the operation's role. Endpoints declared for a
    different role are skipped. Order is preserved.
    """
    result: list[ProviderEndpoint] = []
    for provider in providers:
        if isinstance(provider, str):
            result.append(ProviderEndpoint(url=provider, role=role))
        elif provider.role == role:
            result.append(provider)
    return result
