"""
Transaction builder for single-key native segwit spends.

Builds, signs and serializes a payment from:
- candidate UTXOs, each carrying the AddressRecord that owns it
- a recipient address and amount
- a change address and fee rate

Validation (phrase, amount, addresses, provenance) and coin selection all
run before any private key is derived, so InsufficientFunds can never
surface after key material has been touched.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from btcwallet.constants import STANDARD_DUST_LIMIT
from btcwallet.errors import DerivationFailure, InvalidPhrase
from btcwallet.models import NetworkParams, NetworkType, get_network_params
from btcwallet.wallet.address import decode_address
from btcwallet.wallet.derivation import derive_private_key_for_path, validate_phrase
from btcwallet.wallet.fees import validate_fee_rate
from btcwallet.wallet.models import SignedTransaction, SpendableUTXO
from btcwallet.wallet.selection import select_utxos
from btcwallet.wallet.signing import sign_p2wpkh_input
from btcwallet.wallet.transaction import Transaction, TxInput, TxOutput


def validate_payment(
    phrase: str,
    recipient_address: str,
    amount_sats: int,
    fee_rate: int,
    network: NetworkType | NetworkParams | str,
) -> bytes:
    """
    Check the caller-supplied payment parameters. Returns the recipient's
    scriptPubKey.

    Needs nothing remote, so callers run it before fetching UTXOs.
    """
    if not validate_phrase(phrase):
        raise InvalidPhrase()
    if isinstance(amount_sats, bool) or not isinstance(amount_sats, int) or amount_sats <= 0:
        raise ValueError(f"Amount must be a positive number of sats, got {amount_sats!r}")
    validate_fee_rate(fee_rate)
    return decode_address(recipient_address, get_network_params(network))


def build_transaction(
    phrase: str,
    recipient_address: str,
    amount_sats: int,
    fee_rate: int,
    candidate_utxos: Sequence[SpendableUTXO],
    change_address: str,
    network: NetworkType | NetworkParams | str,
    passphrase: str = "",
    dust_limit: int = STANDARD_DUST_LIMIT,
) -> SignedTransaction:
    """
    Build and sign a transaction paying amount_sats to recipient_address.

    Outputs are ordered recipient first, then change (only when the change
    exceeds dust_limit; otherwise the excess is paid as fee).

    Raises:
        InvalidPhrase: phrase fails validation
        ValueError: amount or fee rate out of range
        InvalidAddress: recipient or change address not valid for network
        InsufficientFunds: candidates cannot cover amount + fee
        DerivationFailure: a chosen UTXO's recorded path does not derive its address
    """
    params = get_network_params(network)
    recipient_script = validate_payment(phrase, recipient_address, amount_sats, fee_rate, params)
    change_script = decode_address(change_address, params)

    for candidate in candidate_utxos:
        if candidate.utxo.address != candidate.record.address:
            raise DerivationFailure(
                candidate.record.path,
                f"UTXO {candidate.outpoint} belongs to {candidate.utxo.address}, "
                f"not {candidate.record.address}",
            )

    logger.info(
        f"Building transaction: amount={amount_sats}, fee_rate={fee_rate}, "
        f"candidates={len(candidate_utxos)}, network={params.network.value}"
    )

    selection = select_utxos(candidate_utxos, amount_sats, fee_rate, dust_limit=dust_limit)
    chosen: list[SpendableUTXO] = selection.utxos

    outputs = [TxOutput(value=amount_sats, script=recipient_script)]
    if selection.has_change:
        outputs.append(TxOutput(value=selection.change_value, script=change_script))

    tx = Transaction(
        inputs=[TxInput(txid=c.txid, vout=c.vout, value=c.value) for c in chosen],
        outputs=outputs,
    )

    for i, candidate in enumerate(chosen):
        _sign_input(tx, i, candidate, phrase, passphrase, params)

    tx_hex = tx.to_hex()
    signed = SignedTransaction(
        tx_hex=tx_hex,
        txid=tx.txid,
        vsize=tx.vsize,
        fee=selection.fee,
        amount=amount_sats,
        change_value=selection.change_value,
        input_count=len(tx.inputs),
        output_count=len(tx.outputs),
    )

    logger.info(
        f"Transaction built: txid={signed.txid}, vsize={signed.vsize}, fee={signed.fee}, "
        f"inputs={signed.input_count}, outputs={signed.output_count}"
    )
    return signed


def _sign_input(
    tx: Transaction,
    index: int,
    candidate: SpendableUTXO,
    phrase: str,
    passphrase: str,
    params: NetworkParams,
) -> None:
    path = candidate.record.path
    with derive_private_key_for_path(phrase, path, passphrase) as key:
        derived_address = key.get_address(params)
        if derived_address != candidate.record.address:
            raise DerivationFailure(
                path, f"derives {derived_address}, expected {candidate.record.address}"
            )
        sign_p2wpkh_input(tx, index, key)
