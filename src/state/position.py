"""
Strategy position snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StrategyPosition:
    """Point-in-time view of the reinvestment strategy's deployed capital."""

    total_deposits: int
    staked_amount: int
    idle_assets: int
    pending_reward: int

    def __post_init__(self) -> None:
        for name in ("total_deposits", "staked_amount", "idle_assets", "pending_reward"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
