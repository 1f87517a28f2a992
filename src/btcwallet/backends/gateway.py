"""
Chain data gateway: read-only queries against redundant Esplora providers.

Each single-address operation runs the ordered failover over the given
providers. Aggregate operations fan out per address with a concurrency
bound, and report addresses that failed on every provider instead of
failing the whole batch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TypeVar

import httpx
from loguru import logger

from btcwallet.backends.base import (
    UTXO,
    AddressBalance,
    AggregateBalance,
    FeeEstimates,
    TransactionStatus,
)
from btcwallet.backends.esplora import EsploraClient
from btcwallet.backends.failover import try_providers, unwrap
from btcwallet.constants import DEFAULT_MAX_CONCURRENCY, DEFAULT_QUERY_TIMEOUT
from btcwallet.errors import AllProvidersFailed
from btcwallet.models import ProviderEndpoint, ProviderRole, coerce_providers

T = TypeVar("T")

ProviderList = Iterable[ProviderEndpoint | str]


class ChainDataGateway:
    """
    Stateless query front-end over Esplora-compatible providers.

    The provider list is passed per call, so the same gateway can serve
    several networks or provider sets.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_QUERY_TIMEOUT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.timeout = timeout
        self.max_concurrency = max_concurrency
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> ChainDataGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _query(
        self,
        providers: ProviderList,
        call: Callable[[EsploraClient], Awaitable[T]],
        operation: str,
    ) -> T:
        endpoints = coerce_providers(providers, ProviderRole.QUERY)

        async def attempt(provider: ProviderEndpoint) -> T:
            return await call(EsploraClient(provider.url, self.client))

        result = await try_providers(endpoints, attempt, self.timeout, operation)
        return unwrap(result, operation)

    async def get_balance(self, address: str, providers: ProviderList) -> AddressBalance:
        """Confirmed balance (funded - spent) and history counters for one address."""
        return await self._query(
            providers, lambda c: c.get_address_balance(address), f"get_balance({address})"
        )

    async def get_utxos(self, address: str, providers: ProviderList) -> list[UTXO]:
        """Unspent outputs for one address, with confirmations against the tip."""
        return await self._query(
            providers, lambda c: c.get_address_utxos(address), f"get_utxos({address})"
        )

    async def get_block_height(self, providers: ProviderList) -> int:
        return await self._query(providers, lambda c: c.get_tip_height(), "get_block_height")

    async def get_transaction_status(
        self, txid: str, providers: ProviderList
    ) -> TransactionStatus:
        return await self._query(
            providers,
            lambda c: c.get_transaction_status(txid),
            f"get_transaction_status({txid})",
        )

    async def get_fee_estimates(self, providers: ProviderList) -> FeeEstimates:
        return await self._query(providers, lambda c: c.get_fee_estimates(), "get_fee_estimates")

    async def _fan_out(
        self,
        addresses: Sequence[str],
        fetch: Callable[[str], Awaitable[T]],
    ) -> list[tuple[str, T | AllProvidersFailed]]:
        """Run fetch per address under the concurrency bound, in address order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(address: str) -> T | AllProvidersFailed:
            async with semaphore:
                try:
                    return await fetch(address)
                except AllProvidersFailed as e:
                    return e

        results = await asyncio.gather(*(bounded(a) for a in addresses))
        return list(zip(addresses, results, strict=True))

    async def get_aggregate_balance(
        self, addresses: Sequence[str], providers: ProviderList
    ) -> AggregateBalance:
        """
        Sum confirmed balances over addresses.

        Addresses whose query failed on every provider contribute nothing and
        are listed in failed_addresses.
        """
        endpoints = coerce_providers(providers, ProviderRole.QUERY)
        results = await self._fan_out(addresses, lambda a: self.get_balance(a, endpoints))

        per_address: list[AddressBalance] = []
        failed: list[str] = []
        for address, result in results:
            if isinstance(result, AllProvidersFailed):
                logger.warning(f"Excluding {address} from balance: {result}")
                failed.append(address)
            else:
                per_address.append(result)

        total = sum(b.confirmed for b in per_address)
        logger.info(
            f"Aggregate balance: {total} sats over {len(per_address)} addresses"
            + (f", {len(failed)} failed" if failed else "")
        )
        return AggregateBalance(
            total_balance=total, per_address=per_address, failed_addresses=failed
        )

    async def get_aggregate_utxos(
        self, addresses: Sequence[str], providers: ProviderList
    ) -> list[UTXO]:
        """
        Concatenate UTXOs of every address, in address order.

        Addresses that failed on every provider are logged and skipped.
        """
        endpoints = coerce_providers(providers, ProviderRole.QUERY)
        results = await self._fan_out(addresses, lambda a: self.get_utxos(a, endpoints))

        utxos: list[UTXO] = []
        failed = 0
        for address, result in results:
            if isinstance(result, AllProvidersFailed):
                logger.warning(f"Excluding {address} from UTXO set: {result}")
                failed += 1
            else:
                utxos.extend(result)

        logger.info(
            f"Found {len(utxos)} UTXOs over {len(addresses) - failed} addresses"
            + (f", {failed} failed" if failed else "")
        )
        return utxos
