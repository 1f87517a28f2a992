"""
Fee estimation for native segwit single-key transactions.

The same formula is used during coin selection and for the final fee, so a
selection that was judged sufficient can never underpay once the output
count is fixed.
"""

from __future__ import annotations

import math

from btcwallet.constants import P2WPKH_INPUT_VSIZE, P2WPKH_OUTPUT_VSIZE, TX_OVERHEAD_VSIZE


def validate_fee_rate(fee_rate: int) -> int:
    """Fee rates are positive integers in sat/vB."""
    if isinstance(fee_rate, bool) or not isinstance(fee_rate, int):
        raise ValueError(f"Fee rate must be an integer sat/vB, got {fee_rate!r}")
    if fee_rate <= 0:
        raise ValueError(f"Fee rate must be positive, got {fee_rate}")
    return fee_rate


def estimate_vsize(input_count: int, output_count: int) -> float:
    """
    Estimate virtual size in vbytes.

    P2WPKH input: ~68 vbytes
    P2WPKH output: ~31 vbytes
    Overhead: ~10.5 vbytes
    """
    if input_count < 0 or output_count < 0:
        raise ValueError("Input and output counts must be non-negative")
    return (
        input_count * P2WPKH_INPUT_VSIZE + output_count * P2WPKH_OUTPUT_VSIZE + TX_OVERHEAD_VSIZE
    )


def estimate_fee(input_count: int, output_count: int, fee_rate: int) -> int:
    """Fee in satoshis: ceil(estimated_vsize * fee_rate)."""
    validate_fee_rate(fee_rate)
    return math.ceil(estimate_vsize(input_count, output_count) * fee_rate)
