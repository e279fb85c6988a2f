"""
Constant-product pair math.

Integer-only helpers used by the in-memory exchange venue:
- Fee is charged on the *gross* input using ceil rounding; pricing uses the net input.
- Outputs round down, so the pair never pays out more than the invariant allows.
- Liquidity minting is ratio-preserving; the first mint permanently locks
  MINIMUM_LIQUIDITY units.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


BPS_DENOM = 10_000
MINIMUM_LIQUIDITY = 1000


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_fee_bps(fee_bps: int) -> None:
    _require_int("fee_bps", fee_bps)
    if not (0 <= fee_bps < BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM})")


@dataclass(frozen=True)
class LiquidityAmounts:
    amount_a: int
    amount_b: int


def compute_fee(amount_in: int, fee_bps: int) -> int:
    """`fee = ceil(amount_in * fee_bps / 10_000)`."""
    _require_int("amount_in", amount_in)
    _require_fee_bps(fee_bps)
    if amount_in < 0:
        raise ValueError("amount_in must be non-negative")
    return (amount_in * fee_bps + BPS_DENOM - 1) // BPS_DENOM


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int) -> int:
    """
    Exact-in output for a single pair.

        net_in = amount_in - ceil(amount_in * fee_bps / 10_000)
        amount_out = floor(reserve_out * net_in / (reserve_in + net_in))
    """
    for name, v in (("amount_in", amount_in), ("reserve_in", reserve_in), ("reserve_out", reserve_out)):
        _require_int(name, v)
    if amount_in <= 0:
        raise ValueError("amount_in must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise ValueError("insufficient liquidity")

    net_in = amount_in - compute_fee(amount_in, fee_bps)
    if net_in <= 0:
        return 0
    return (reserve_out * net_in) // (reserve_in + net_in)


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Amount of B equal in value to `amount_a` at the current reserve ratio (floor)."""
    for name, v in (("amount_a", amount_a), ("reserve_a", reserve_a), ("reserve_b", reserve_b)):
        _require_int(name, v)
    if amount_a <= 0:
        raise ValueError("amount_a must be positive")
    if reserve_a <= 0 or reserve_b <= 0:
        raise ValueError("insufficient liquidity")
    return (amount_a * reserve_b) // reserve_a


def optimal_amounts(
    *,
    reserve_a: int,
    reserve_b: int,
    amount_a_desired: int,
    amount_b_desired: int,
    amount_a_min: int,
    amount_b_min: int,
) -> LiquidityAmounts:
    """
    Pick the ratio-preserving amounts actually pulled for an add-liquidity call.

    An empty pair takes both desired amounts as-is.
    """
    for name, v in (
        ("reserve_a", reserve_a),
        ("reserve_b", reserve_b),
        ("amount_a_desired", amount_a_desired),
        ("amount_b_desired", amount_b_desired),
        ("amount_a_min", amount_a_min),
        ("amount_b_min", amount_b_min),
    ):
        _require_int(name, v)
    if amount_a_desired <= 0 or amount_b_desired <= 0:
        raise ValueError("desired amounts must be positive")
    if amount_a_min < 0 or amount_b_min < 0:
        raise ValueError("minimum amounts must be non-negative")

    if reserve_a == 0 and reserve_b == 0:
        return LiquidityAmounts(amount_a=amount_a_desired, amount_b=amount_b_desired)

    amount_b_optimal = quote(amount_a_desired, reserve_a, reserve_b)
    if amount_b_optimal <= amount_b_desired:
        if amount_b_optimal < amount_b_min:
            raise ValueError("insufficient B amount")
        return LiquidityAmounts(amount_a=amount_a_desired, amount_b=amount_b_optimal)

    amount_a_optimal = quote(amount_b_desired, reserve_b, reserve_a)
    if amount_a_optimal > amount_a_desired:
        raise AssertionError("optimal A exceeds desired A")
    if amount_a_optimal < amount_a_min:
        raise ValueError("insufficient A amount")
    return LiquidityAmounts(amount_a=amount_a_optimal, amount_b=amount_b_desired)


def liquidity_to_mint(
    *,
    amount_a: int,
    amount_b: int,
    reserve_a: int,
    reserve_b: int,
    total_supply: int,
) -> int:
    """
    LP units minted for a deposit of (amount_a, amount_b).

    First mint: `isqrt(amount_a * amount_b) - MINIMUM_LIQUIDITY` (the lock is
    minted separately by the caller). Later mints take the smaller of the two
    proportional shares, rounded down.
    """
    for name, v in (
        ("amount_a", amount_a),
        ("amount_b", amount_b),
        ("reserve_a", reserve_a),
        ("reserve_b", reserve_b),
        ("total_supply", total_supply),
    ):
        _require_int(name, v)
    if amount_a <= 0 or amount_b <= 0:
        raise ValueError("deposit amounts must be positive")

    if total_supply == 0:
        root = math.isqrt(amount_a * amount_b)
        if root <= MINIMUM_LIQUIDITY:
            raise ValueError("insufficient initial liquidity")
        return root - MINIMUM_LIQUIDITY

    if reserve_a <= 0 or reserve_b <= 0:
        raise ValueError("cannot add liquidity to a drained pair")
    minted = min((amount_a * total_supply) // reserve_a, (amount_b * total_supply) // reserve_b)
    if minted <= 0:
        raise ValueError("insufficient liquidity minted")
    return minted
