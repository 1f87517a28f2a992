"""
Wallet service: ties derivation, chain queries, building and broadcast together.

The service never stores the recovery phrase. Operations that need keys take
the phrase as an argument and derive what they need for that call only.
"""

from __future__ import annotations

from loguru import logger

from btcwallet.backends.base import AggregateBalance, FeeEstimates, TransactionStatus
from btcwallet.backends.broadcast import Broadcaster
from btcwallet.backends.gateway import ChainDataGateway
from btcwallet.config import WalletSettings
from btcwallet.errors import WalletError
from btcwallet.models import ProviderRole
from btcwallet.wallet.derivation import derive_account
from btcwallet.wallet.models import AccountInfo, AddressRecord, SignedTransaction, SpendableUTXO
from btcwallet.wallet.tx_builder import build_transaction, validate_payment


class WalletService:
    """
    BIP84 single-account wallet over remote Esplora providers.

    Derivation path: m/84'/{coin_type}'/{account}'/{chain}/{index}
    - coin_type: 0 (mainnet), 1 (testnet, signet, regtest)
    - chain: 0 (external/receive), 1 (internal/change)
    """

    def __init__(
        self,
        settings: WalletSettings,
        gateway: ChainDataGateway | None = None,
        broadcaster: Broadcaster | None = None,
    ):
        self.settings = settings
        self.network = settings.network_params
        self.gateway = gateway or ChainDataGateway(
            timeout=settings.query_timeout, max_concurrency=settings.max_concurrency
        )
        self.broadcaster = broadcaster or Broadcaster(timeout=settings.broadcast_timeout)

        logger.info(f"Initialized wallet service on {self.network.network.value}")

    async def __aenter__(self) -> WalletService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def load_account(self, phrase: str, passphrase: str = "") -> AccountInfo:
        """Derive the configured account's receive and change addresses."""
        return derive_account(
            phrase,
            account_index=self.settings.account_index,
            receive_count=self.settings.receive_count,
            change_count=self.settings.change_count,
            network=self.network,
            passphrase=passphrase,
        )

    async def get_balance(self, account: AccountInfo) -> AggregateBalance:
        return await self.gateway.get_aggregate_balance(
            account.address_strings, self.settings.providers(ProviderRole.QUERY)
        )

    async def get_spendable_utxos(self, account: AccountInfo) -> list[SpendableUTXO]:
        """UTXOs of every account address, each paired with the record that owns it."""
        utxos = await self.gateway.get_aggregate_utxos(
            account.address_strings, self.settings.providers(ProviderRole.QUERY)
        )

        spendable: list[SpendableUTXO] = []
        for utxo in utxos:
            record = account.find(utxo.address)
            if record is None:
                logger.warning(f"Dropping UTXO {utxo.outpoint} for unknown address {utxo.address}")
                continue
            spendable.append(SpendableUTXO(utxo=utxo, record=record))
        return spendable

    def select_change_address(
        self, account: AccountInfo, spendable: list[SpendableUTXO]
    ) -> AddressRecord:
        """First change address holding no UTXOs, else the first change address."""
        change = account.change_addresses
        if not change:
            raise WalletError("Account has no change addresses")

        used = {s.record.address for s in spendable}
        for record in change:
            if record.address not in used:
                return record
        return change[0]

    async def create_transaction(
        self,
        phrase: str,
        account: AccountInfo,
        recipient: str,
        amount: int,
        fee_rate: int | None = None,
        passphrase: str = "",
    ) -> SignedTransaction:
        """
        Build a signed transaction without broadcasting it.

        Phrase, recipient, amount and fee rate are checked before any UTXO is
        fetched.
        """
        rate = fee_rate if fee_rate is not None else self.settings.default_fee_rate
        validate_payment(phrase, recipient, amount, rate, self.network)

        spendable = await self.get_spendable_utxos(account)
        change = self.select_change_address(account, spendable)

        return build_transaction(
            phrase,
            recipient,
            amount,
            rate,
            spendable,
            change.address,
            self.network,
            passphrase=passphrase,
            dust_limit=self.settings.dust_limit,
        )

    async def send(
        self,
        phrase: str,
        account: AccountInfo,
        recipient: str,
        amount: int,
        fee_rate: int | None = None,
        passphrase: str = "",
    ) -> SignedTransaction:
        """
        Build, sign and broadcast. Returns the transaction that was accepted.

        The returned txid is the one computed locally. A provider reporting a
        different txid is only logged: the transaction is already out.
        """
        signed = await self.create_transaction(
            phrase, account, recipient, amount, fee_rate=fee_rate, passphrase=passphrase
        )

        txid = await self.broadcaster.broadcast(
            signed.tx_hex, self.settings.providers(ProviderRole.BROADCAST)
        )
        if txid != signed.txid:
            logger.warning(f"Provider reported txid {txid}, computed {signed.txid}")

        logger.info(f"Sent {amount} sats to {recipient}: {signed.txid}")
        return signed

    async def get_transaction_status(self, txid: str) -> TransactionStatus:
        return await self.gateway.get_transaction_status(
            txid, self.settings.providers(ProviderRole.QUERY)
        )

    async def get_fee_estimates(self) -> FeeEstimates:
        return await self.gateway.get_fee_estimates(self.settings.providers(ProviderRole.QUERY))

    async def close(self) -> None:
        """Close provider connections"""
        await self.gateway.close()
        await self.broadcaster.close()
