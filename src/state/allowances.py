"""
Spending allowances.

An allowance is either UNLIMITED or BOUNDED(amount). Unlimited allowances are
never decremented by a spend; bounded ones are decremented by exactly the
amount spent. The raw integer sentinel `MAX_UINT256` used on the wire maps to
UNLIMITED via `Allowance.from_raw`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique


MAX_UINT256 = 2**256 - 1


@unique
class AllowanceKind(Enum):
    UNLIMITED = "unlimited"
    BOUNDED = "bounded"


@dataclass(frozen=True)
class Allowance:
    kind: AllowanceKind
    amount: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise TypeError("allowance amount must be an int")
        if self.amount < 0:
            raise ValueError("allowance amount must be non-negative")
        if self.kind is AllowanceKind.UNLIMITED and self.amount != 0:
            raise ValueError("unlimited allowance carries no amount")

    @classmethod
    def unlimited(cls) -> "Allowance":
        return cls(AllowanceKind.UNLIMITED)

    @classmethod
    def bounded(cls, amount: int) -> "Allowance":
        return cls(AllowanceKind.BOUNDED, amount)

    @classmethod
    def from_raw(cls, raw: int) -> "Allowance":
        """Map a raw integer allowance (with the max-uint sentinel) to an Allowance."""
        if raw == MAX_UINT256:
            return cls.unlimited()
        return cls.bounded(raw)

    @property
    def is_unlimited(self) -> bool:
        return self.kind is AllowanceKind.UNLIMITED

    def covers(self, amount: int) -> bool:
        return self.is_unlimited or self.amount >= amount

    def after_spend(self, amount: int) -> "Allowance":
        """
        Allowance left after spending `amount`.

        Raises:
            ValueError: If a bounded allowance does not cover `amount`
        """
        if amount < 0:
            raise ValueError(f"spend amount must be non-negative: {amount}")
        if self.is_unlimited:
            return self
        if self.amount < amount:
            raise ValueError(f"allowance {self.amount} does not cover {amount}")
        return Allowance.bounded(self.amount - amount)


NO_ALLOWANCE = Allowance.bounded(0)
