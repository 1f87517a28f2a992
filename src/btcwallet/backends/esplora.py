"""
Esplora-compatible REST API client for a single provider.

Raw JSON bodies are validated against pydantic models before being turned
into wallet types, so a provider returning an unexpected shape fails the
same way as one that is unreachable.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from btcwallet.backends.base import UTXO, AddressBalance, FeeEstimates, TransactionStatus

# Status codes meaning "this server does not offer the /utxo endpoint"
UTXO_ENDPOINT_UNSUPPORTED = frozenset({404, 405, 501})

# Esplora returns at most this many confirmed txs per /txs/chain page
TXS_PAGE_SIZE = 25


class MalformedResponse(ValueError):
    """Provider answered 2xx but the body does not have the expected shape."""


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ChainStats(_ProviderModel):
    funded_txo_count: int = 0
    funded_txo_sum: int = Field(..., ge=0)
    spent_txo_count: int = 0
    spent_txo_sum: int = Field(..., ge=0)
    tx_count: int = Field(..., ge=0)


class AddressInfo(_ProviderModel):
    address: str | None = None
    chain_stats: ChainStats


class TxStatus(_ProviderModel):
    confirmed: bool
    block_height: int | None = None
    block_hash: str | None = None
    block_time: int | None = None


class UtxoEntry(_ProviderModel):
    txid: str = Field(..., min_length=64, max_length=64)
    vout: int = Field(..., ge=0)
    value: int = Field(..., ge=0)
    status: TxStatus


class TxOut(_ProviderModel):
    scriptpubkey: str = ""
    scriptpubkey_address: str | None = None
    value: int = Field(..., ge=0)


class TxEntry(_ProviderModel):
    txid: str = Field(..., min_length=64, max_length=64)
    vout: list[TxOut]
    status: TxStatus


class Outspend(_ProviderModel):
    spent: bool
    txid: str | None = None
    vin: int | None = None


class RecommendedFees(_ProviderModel):
    fastest_fee: int = Field(..., gt=0, alias="fastestFee")
    half_hour_fee: int = Field(..., gt=0, alias="halfHourFee")
    hour_fee: int = Field(..., gt=0, alias="hourFee")
    economy_fee: int = Field(..., gt=0, alias="economyFee")
    minimum_fee: int = Field(..., gt=0, alias="minimumFee")


_UTXO_LIST = TypeAdapter(list[UtxoEntry])
_TX_LIST = TypeAdapter(list[TxEntry])
_OUTSPEND_LIST = TypeAdapter(list[Outspend])


def confirmations_for(height: int | None, tip_height: int) -> int:
    """tip - height + 1 for confirmed outputs, 0 while unconfirmed."""
    if height is None:
        return 0
    return max(tip_height - height + 1, 0)


class EsploraClient:
    """Typed calls against one Esplora base URL over a shared httpx client."""

    def __init__(self, base_url: str, client: httpx.AsyncClient):
        self.base_url = base_url.rstrip("/")
        self.client = client

    async def _get(self, endpoint: str) -> httpx.Response:
        url = f"{self.base_url}/{endpoint}"
        logger.debug(f"GET {url}")
        response = await self.client.get(url)
        response.raise_for_status()
        return response

    async def _get_json(self, endpoint: str) -> Any:
        response = await self._get(endpoint)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"{endpoint}: body is not JSON") from e

    @staticmethod
    def _validate(model: Any, data: Any, endpoint: str) -> Any:
        try:
            if isinstance(model, TypeAdapter):
                return model.validate_python(data)
            return model.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(
                f"{endpoint}: unexpected response shape ({e.error_count()} errors)"
            ) from e

    async def get_address_balance(self, address: str) -> AddressBalance:
        endpoint = f"api/address/{address}"
        info: AddressInfo = self._validate(AddressInfo, await self._get_json(endpoint), endpoint)
        stats = info.chain_stats
        return AddressBalance(
            address=address,
            confirmed=stats.funded_txo_sum - stats.spent_txo_sum,
            total_received=stats.funded_txo_sum,
            total_sent=stats.spent_txo_sum,
            tx_count=stats.tx_count,
        )

    async def get_tip_height(self) -> int:
        response = await self._get("blocks/tip/height")
        text = response.text.strip()
        if not text.isdigit():
            raise MalformedResponse(f"blocks/tip/height: not a block height: {text[:32]!r}")
        return int(text)

    async def get_address_utxos(self, address: str) -> list[UTXO]:
        """
        Unspent outputs for address.

        Servers that do not expose /utxo are handled by reconstructing the
        unspent set from the address history and per-tx outspends.
        """
        endpoint = f"api/address/{address}/utxo"
        try:
            data = await self._get_json(endpoint)
        except httpx.HTTPStatusError as e:
            if e.response.status_code not in UTXO_ENDPOINT_UNSUPPORTED:
                raise
            logger.debug(
                f"{self.base_url} has no utxo endpoint (HTTP {e.response.status_code}), "
                "scanning address history"
            )
            entries = await self._scan_history_for_utxos(address)
        else:
            entries = [
                (u.txid, u.vout, u.value, u.status.block_height if u.status.confirmed else None)
                for u in self._validate(_UTXO_LIST, data, endpoint)
            ]

        if any(height is not None for *_, height in entries):
            tip_height = await self.get_tip_height()
        else:
            tip_height = 0

        utxos = [
            UTXO(
                txid=txid,
                vout=vout,
                value=value,
                address=address,
                confirmations=confirmations_for(height, tip_height),
                height=height,
            )
            for txid, vout, value, height in entries
        ]
        utxos.sort(key=lambda u: (u.height is None, u.height or 0, u.txid, u.vout))
        return utxos

    async def _scan_history_for_utxos(
        self, address: str
    ) -> list[tuple[str, int, int, int | None]]:
        txs = await self._get_address_txs(address)
        entries: list[tuple[str, int, int, int | None]] = []

        for tx in txs:
            paying = [i for i, out in enumerate(tx.vout) if out.scriptpubkey_address == address]
            if not paying:
                continue

            endpoint = f"api/tx/{tx.txid}/outspends"
            outspends: list[Outspend] = self._validate(
                _OUTSPEND_LIST, await self._get_json(endpoint), endpoint
            )
            if len(outspends) != len(tx.vout):
                raise MalformedResponse(
                    f"{endpoint}: {len(outspends)} outspends for {len(tx.vout)} outputs"
                )

            height = tx.status.block_height if tx.status.confirmed else None
            for i in paying:
                if not outspends[i].spent:
                    entries.append((tx.txid, i, tx.vout[i].value, height))

        return entries

    async def _get_address_txs(self, address: str) -> list[TxEntry]:
        endpoint = f"api/address/{address}/txs"
        page: list[TxEntry] = self._validate(_TX_LIST, await self._get_json(endpoint), endpoint)
        txs = list(page)
        seen = {tx.txid for tx in txs}

        # Further confirmed history is paged by the last confirmed txid seen
        confirmed_in_page = [tx for tx in page if tx.status.confirmed]
        while len(confirmed_in_page) >= TXS_PAGE_SIZE:
            last_txid = confirmed_in_page[-1].txid
            endpoint = f"api/address/{address}/txs/chain/{last_txid}"
            page = self._validate(_TX_LIST, await self._get_json(endpoint), endpoint)
            page = [tx for tx in page if tx.txid not in seen]
            if not page:
                break
            txs.extend(page)
            seen.update(tx.txid for tx in page)
            confirmed_in_page = [tx for tx in page if tx.status.confirmed]

        return txs

    async def get_transaction_status(self, txid: str) -> TransactionStatus:
        endpoint = f"api/tx/{txid}/status"
        status: TxStatus = self._validate(TxStatus, await self._get_json(endpoint), endpoint)
        if not status.confirmed or status.block_height is None:
            return TransactionStatus(txid=txid, confirmed=False)

        tip_height = await self.get_tip_height()
        return TransactionStatus(
            txid=txid,
            confirmed=True,
            block_height=status.block_height,
            confirmations=confirmations_for(status.block_height, tip_height),
        )

    async def get_fee_estimates(self) -> FeeEstimates:
        endpoint = "api/v1/fees/recommended"
        fees: RecommendedFees = self._validate(
            RecommendedFees, await self._get_json(endpoint), endpoint
        )
        return FeeEstimates(
            fastest_fee=fees.fastest_fee,
            half_hour_fee=fees.half_hour_fee,
            hour_fee=fees.hour_fee,
            economy_fee=fees.economy_fee,
            minimum_fee=fees.minimum_fee,
        )

    async def broadcast(self, tx_hex: str) -> httpx.Response:
        """POST the raw hex; the caller interprets the status and body."""
        url = f"{self.base_url}/api/tx"
        logger.debug(f"POST {url} ({len(tx_hex) // 2} bytes)")
        return await self.client.post(url, content=tx_hex, headers={"Content-Type": "text/plain"})
