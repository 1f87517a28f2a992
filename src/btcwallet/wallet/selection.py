"""
Largest-first coin selection.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from loguru import logger

from btcwallet.backends.base import UTXO
from btcwallet.constants import STANDARD_DUST_LIMIT
from btcwallet.errors import InsufficientFunds
from btcwallet.wallet.fees import estimate_fee, validate_fee_rate
from btcwallet.wallet.models import CoinSelection, SpendableUTXO

CoinT = TypeVar("CoinT", UTXO, SpendableUTXO)


def select_utxos(
    utxos: Sequence[CoinT],
    target_amount: int,
    fee_rate: int,
    dust_limit: int = STANDARD_DUST_LIMIT,
) -> CoinSelection:
    """
    Select UTXOs to pay target_amount at fee_rate.

    Sorts descending by value and accumulates until the running total
    covers the target plus the fee for a two-output (recipient + change)
    transaction. The final fee is then recomputed for the chosen input
    count; if the resulting change would not exceed dust_limit the change
    output is dropped and the excess goes to the fee.

    Raises:
        InsufficientFunds: the whole set cannot cover target + fee
    """
    if target_amount <= 0:
        raise ValueError(f"Target amount must be positive, got {target_amount}")
    validate_fee_rate(fee_rate)

    eligible = sorted(utxos, key=lambda u: (-u.value, u.txid, u.vout))

    selected: list[CoinT] = []
    total = 0
    satisfied = False

    for utxo in eligible:
        selected.append(utxo)
        total += utxo.value
        if total >= target_amount + estimate_fee(len(selected), 2, fee_rate):
            satisfied = True
            break

    if not satisfied:
        needed = target_amount + estimate_fee(max(len(selected), 1), 2, fee_rate)
        logger.debug(f"Coin selection failed: need {needed}, have {total} from {len(selected)}")
        raise InsufficientFunds(needed=needed, have=total)

    fee = estimate_fee(len(selected), 2, fee_rate)
    change = total - target_amount - fee

    if change <= dust_limit:
        logger.debug(f"Dropping sub-dust change of {change} sats into the fee")
        fee = total - target_amount
        change = 0

    logger.debug(
        f"Selected {len(selected)} UTXOs: total={total}, amount={target_amount}, "
        f"fee={fee}, change={change}"
    )

    return CoinSelection(utxos=selected, total_value=total, change_value=change, fee=fee)
