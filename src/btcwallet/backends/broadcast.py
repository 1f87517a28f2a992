"""
Transaction broadcast with provider failover.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import httpx
from loguru import logger

from btcwallet.backends.esplora import EsploraClient, MalformedResponse
from btcwallet.backends.failover import try_providers, unwrap
from btcwallet.constants import DEFAULT_BROADCAST_TIMEOUT
from btcwallet.errors import BroadcastRejected
from btcwallet.models import ProviderEndpoint, ProviderRole, coerce_providers

_TXID_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_HEX_RE = re.compile(r"^(?:[0-9a-fA-F]{2})+$")


class Broadcaster:
    """Submits signed transactions; the first provider to accept wins."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_BROADCAST_TIMEOUT,
    ):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> Broadcaster:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def broadcast(self, tx_hex: str, providers: Iterable[ProviderEndpoint | str]) -> str:
        """
        Broadcast a raw transaction and return the txid reported by the provider.

        A provider that rejects the transaction (non-2xx) is recorded as a
        failure and the next provider is tried.

        Raises:
            ValueError: tx_hex is not an even-length hex string
            AllProvidersFailed: no provider accepted the transaction
        """
        tx_hex = tx_hex.strip()
        if not _HEX_RE.match(tx_hex):
            raise ValueError("Transaction must be a non-empty even-length hex string")

        endpoints = coerce_providers(providers, ProviderRole.BROADCAST)

        async def attempt(provider: ProviderEndpoint) -> str:
            response = await EsploraClient(provider.url, self.client).broadcast(tx_hex)
            if not response.is_success:
                raise BroadcastRejected(provider.url, response.status_code, response.text.strip())

            txid = response.text.strip()
            if not _TXID_RE.match(txid):
                raise MalformedResponse(f"api/tx: not a txid: {txid[:80]!r}")
            return txid.lower()

        result = await try_providers(endpoints, attempt, self.timeout, "broadcast")
        txid = unwrap(result, "broadcast")
        logger.info(f"Broadcast accepted by {result.provider.url}: {txid}")
        return txid
