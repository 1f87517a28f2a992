"""
BIP84 key derivation, coin selection, transaction building and signing.
"""

from btcwallet.wallet.derivation import (
    derive_account,
    derive_private_key_for_path,
    generate_phrase,
    validate_phrase,
)
from btcwallet.wallet.fees import estimate_fee, estimate_vsize
from btcwallet.wallet.models import (
    AccountInfo,
    AddressRecord,
    CoinSelection,
    SignedTransaction,
    SpendableUTXO,
)
from btcwallet.wallet.selection import select_utxos
from btcwallet.wallet.service import WalletService
from btcwallet.wallet.tx_builder import build_transaction, validate_payment

__all__ = [
    "AccountInfo",
    "AddressRecord",
    "CoinSelection",
    "SignedTransaction",
    "SpendableUTXO",
    "WalletService",
    "build_transaction",
    "derive_account",
    "derive_private_key_for_path",
    "estimate_fee",
    "estimate_vsize",
    "generate_phrase",
    "select_utxos",
    "validate_payment",
    "validate_phrase",
]
