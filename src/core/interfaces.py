"""
Collaborator interfaces consumed by the vault.

The fungible ledger, staking venue and exchange venue are external systems.
They are described here as structural protocols so that any implementation
(the in-memory venues under `src/venues`, an RPC adapter, a test double) can
be injected. `sender` is the account on whose behalf a call is made.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..state.allowances import Allowance


@dataclass(frozen=True)
class UserInfo:
    """A staker's position in one staking pool."""

    amount: int
    reward_debt: int = 0


@runtime_checkable
class FungibleLedger(Protocol):
    def balance_of(self, token: str, account: str) -> int: ...

    def total_supply(self, token: str) -> int: ...

    def decimals(self, token: str) -> int: ...

    def allowance(self, token: str, owner: str, spender: str) -> Allowance: ...

    def approve(self, token: str, spender: str, allowance: Allowance, *, sender: str) -> None: ...

    def transfer(self, token: str, to: str, amount: int, *, sender: str) -> None: ...

    def transfer_from(self, token: str, from_: str, to: str, amount: int, *, sender: str) -> None: ...

    def mint(self, token: str, to: str, amount: int) -> None: ...

    def burn(self, token: str, from_: str, amount: int) -> None: ...


@runtime_checkable
class StakingVenue(Protocol):
    address: str

    def deposit(self, pool_id: int, amount: int, *, sender: str) -> None: ...

    def withdraw(self, pool_id: int, amount: int, *, sender: str) -> None: ...

    def user_info(self, pool_id: int, account: str) -> UserInfo: ...

    def pending_tokens(
        self, pool_id: int, account: str
    ) -> Tuple[int, Optional[str], Optional[str], int]: ...

    def emergency_withdraw(self, pool_id: int, *, sender: str) -> None: ...


@runtime_checkable
class ExchangeVenue(Protocol):
    address: str

    def get_amounts_out(self, amount_in: int, path: Sequence[str]) -> list[int]: ...

    def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]: ...

    def add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> Tuple[int, int, int]: ...


class VaultHooks(Protocol):
    """Extension points VaultAccounting delegates to."""

    def total_assets(self) -> int: ...

    def before_withdraw(self, assets: int, shares: int) -> None: ...

    def after_deposit(self, assets: int, shares: int) -> None: ...
