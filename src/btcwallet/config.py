"""
Configuration management using pydantic-settings.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from btcwallet.constants import (
    DEFAULT_BROADCAST_TIMEOUT,
    DEFAULT_CHANGE_COUNT,
    DEFAULT_FEE_RATE,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_QUERY_TIMEOUT,
    DEFAULT_RECEIVE_COUNT,
    STANDARD_DUST_LIMIT,
)
from btcwallet.models import (
    NetworkParams,
    NetworkType,
    ProviderEndpoint,
    ProviderRole,
    get_default_indexers,
    get_network_params,
)


class WalletSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BTCWALLET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    network: NetworkType = NetworkType.TESTNET
    # Overrides the per-network default indexers when set
    indexers: list[str] | None = None

    query_timeout: float = Field(DEFAULT_QUERY_TIMEOUT, gt=0)
    broadcast_timeout: float = Field(DEFAULT_BROADCAST_TIMEOUT, gt=0)
    max_concurrency: int = Field(DEFAULT_MAX_CONCURRENCY, ge=1)

    account_index: int = Field(0, ge=0)
    receive_count: int = Field(DEFAULT_RECEIVE_COUNT, ge=1)
    change_count: int = Field(DEFAULT_CHANGE_COUNT, ge=1)

    default_fee_rate: int = Field(DEFAULT_FEE_RATE, gt=0)
    dust_limit: int = Field(STANDARD_DUST_LIMIT, ge=0)

    log_level: str = "INFO"

    @field_validator("indexers")
    @classmethod
    def validate_indexers(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        # Validates scheme and strips trailing slashes
        return [ProviderEndpoint(url=url).url for url in v]

    @property
    def network_params(self) -> NetworkParams:
        return get_network_params(self.network)

    def providers(self, role: ProviderRole = ProviderRole.QUERY) -> list[ProviderEndpoint]:
        """Ordered provider endpoints for an operation of the given role."""
        urls = self.indexers if self.indexers is not None else get_default_indexers(self.network)
        return [ProviderEndpoint(url=url, role=role) for url in urls]


def get_settings(**overrides: object) -> WalletSettings:
    return WalletSettings(**overrides)
