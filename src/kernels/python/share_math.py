"""
Share conversion kernel.

Pure integer conversions between vault assets and vault shares with explicit
rounding direction. Callers pick the direction so that every conversion
favours the vault:
- shares issued for assets: DOWN
- shares charged for assets withdrawn: UP
- assets paid for shares redeemed: DOWN
- assets charged for shares minted: UP

While the share supply is zero the vault prices 1 share = 1 asset.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class Rounding(Enum):
    DOWN = "down"
    UP = "up"


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def mul_div(x: int, y: int, denominator: int, rounding: Rounding) -> int:
    """
    Compute `x * y / denominator` rounded in the given direction.
    """
    _require_int("x", x)
    _require_int("y", y)
    _require_int("denominator", denominator)
    if x < 0 or y < 0:
        raise ValueError("operands must be non-negative")
    if denominator <= 0:
        raise ValueError("denominator must be positive")

    product = x * y
    if rounding is Rounding.UP:
        return (product + denominator - 1) // denominator
    return product // denominator


def to_shares(*, assets: int, total_assets: int, total_supply: int, rounding: Rounding) -> int:
    """
    Shares worth `assets` at the current price.

        shares = assets                                  if total_supply == 0
        shares = assets * total_supply / total_assets    otherwise

    Raises ValueError if shares are outstanding but the vault holds no assets
    (every share is worthless and no price exists).
    """
    for name, v in (("assets", assets), ("total_assets", total_assets), ("total_supply", total_supply)):
        _require_int(name, v)
    if assets < 0 or total_assets < 0 or total_supply < 0:
        raise ValueError("amounts must be non-negative")

    if total_supply == 0:
        return assets
    if total_assets == 0:
        raise ValueError("vault has outstanding shares but no assets")
    return mul_div(assets, total_supply, total_assets, rounding)


def to_assets(*, shares: int, total_assets: int, total_supply: int, rounding: Rounding) -> int:
    """
    Assets backing `shares` at the current price.

        assets = shares                                  if total_supply == 0
        assets = shares * total_assets / total_supply    otherwise
    """
    for name, v in (("shares", shares), ("total_assets", total_assets), ("total_supply", total_supply)):
        _require_int(name, v)
    if shares < 0 or total_assets < 0 or total_supply < 0:
        raise ValueError("amounts must be non-negative")

    if total_supply == 0:
        return shares
    return mul_div(shares, total_assets, total_supply, rounding)
