"""
Bitcoin wallet constants.

Size weights are for native segwit single-key (P2WPKH) spends and are used
both during coin selection and when the final fee is computed, so the two
always agree.
"""

from __future__ import annotations

# Standard P2PKH dust limit in Bitcoin Core
STANDARD_DUST_LIMIT = 546  # satoshis

# Estimated virtual size contributions (vbytes)
P2WPKH_INPUT_VSIZE = 68
P2WPKH_OUTPUT_VSIZE = 31
TX_OVERHEAD_VSIZE = 10.5

# BIP84 derivation
BIP84_PURPOSE = 84
COIN_TYPE_MAINNET = 0
COIN_TYPE_TESTNET = 1
RECEIVE_CHAIN = 0
CHANGE_CHAIN = 1
HARDENED_OFFSET = 0x80000000

# Default account layout (addresses per chain)
DEFAULT_RECEIVE_COUNT = 20
DEFAULT_CHANGE_COUNT = 20

# BIP39 entropy: 128 bits -> 12 words
DEFAULT_ENTROPY_BITS = 128

# Provider timeouts (seconds)
DEFAULT_QUERY_TIMEOUT = 5.0
DEFAULT_BROADCAST_TIMEOUT = 10.0

# Upper bound for concurrent per-address queries
DEFAULT_MAX_CONCURRENCY = 8

SATS_PER_BTC = 100_000_000
DEFAULT_FEE_RATE = 10  # sat/vB
