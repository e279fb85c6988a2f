"""
Reward accrual kernel (accumulated reward per staked unit).

Each pool tracks `acc_reward_per_share` scaled by ACC_SCALE. A staker's claim is

    pending = amount * acc / ACC_SCALE - reward_debt

where `reward_debt` is reset to `amount * acc / ACC_SCALE` whenever the
staker's amount changes. Rewards that cannot be distributed (nothing staked,
or rounding remainder) are carried into the next accrual instead of being lost.
"""

from __future__ import annotations


ACC_SCALE = 10**12


def _require_non_negative_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def accrue(*, acc: int, total_staked: int, amount: int, carry: int) -> tuple[int, int]:
    """
    Distribute `amount` (plus any carried remainder) over `total_staked`.

    Returns (new_acc, new_carry).
    """
    for name, v in (("acc", acc), ("total_staked", total_staked), ("amount", amount), ("carry", carry)):
        _require_non_negative_int(name, v)

    total = carry + amount
    if total_staked == 0:
        return acc, total

    delta_acc = (total * ACC_SCALE) // total_staked
    distributed = (delta_acc * total_staked) // ACC_SCALE
    return acc + delta_acc, total - distributed


def reward_debt(amount: int, acc: int) -> int:
    _require_non_negative_int("amount", amount)
    _require_non_negative_int("acc", acc)
    return (amount * acc) // ACC_SCALE


def pending(amount: int, acc: int, debt: int) -> int:
    """Unclaimed reward for a position; never negative."""
    _require_non_negative_int("debt", debt)
    return max(reward_debt(amount, acc) - debt, 0)
