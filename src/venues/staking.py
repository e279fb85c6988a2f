"""
In-memory staking venue (MasterChef-style reward pools).

Pools are indexed by integer id, each accepting one LP token. Rewards are
pushed into a pool with `notify_reward` and shared pro rata across stakers via
an accumulated-reward-per-share index (`src/kernels/python/reward_math.py`).
`deposit` and `withdraw` pay out the caller's pending reward first, so a zero
amount `deposit` is a plain harvest. `emergency_withdraw` returns the stake and
forfeits pending reward, which is redistributed on the next accrual.

Invariant: reward tokens held by the venue == sum of pending rewards + carry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from ..core.interfaces import UserInfo
from ..kernels.python.reward_math import accrue, pending, reward_debt
from ..state.balances import Account, TokenId
from .ledger import InMemoryLedger


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StakingPool:
    lp_token: TokenId
    acc_reward_per_share: int = 0
    carry: int = 0
    total_staked: int = 0


class InMemoryStakingVenue:
    def __init__(self, ledger: InMemoryLedger, reward_token: TokenId, *, address: Account = "staking") -> None:
        self._ledger = ledger
        self.reward_token = reward_token
        self.address = address
        self._pools: List[StakingPool] = []
        self._users: Dict[Tuple[int, Account], UserInfo] = {}

    def add_pool(self, lp_token: TokenId) -> int:
        self._pools.append(StakingPool(lp_token=lp_token))
        return len(self._pools) - 1

    def pool(self, pool_id: int) -> StakingPool:
        if not isinstance(pool_id, int) or isinstance(pool_id, bool) or not (0 <= pool_id < len(self._pools)):
            raise ValueError(f"unknown pool id: {pool_id}")
        return self._pools[pool_id]

    # -- views ---------------------------------------------------------

    def user_info(self, pool_id: int, account: Account) -> UserInfo:
        self.pool(pool_id)
        return self._users.get((pool_id, account), UserInfo(amount=0))

    def pending_tokens(self, pool_id: int, account: Account) -> Tuple[int, Optional[str], Optional[str], int]:
        """(pending reward, bonus token, bonus symbol, pending bonus); no bonus tokens here."""
        pool = self.pool(pool_id)
        user = self.user_info(pool_id, account)
        return pending(user.amount, pool.acc_reward_per_share, user.reward_debt), None, None, 0

    # -- mutations -----------------------------------------------------

    def notify_reward(self, pool_id: int, amount: int, *, sender: Account) -> None:
        """Fund `amount` of reward token into a pool and distribute it to current stakers."""
        pool = self.pool(pool_id)
        self._ledger.transfer_from(self.reward_token, sender, self.address, amount, sender=self.address)
        acc, carry = accrue(
            acc=pool.acc_reward_per_share,
            total_staked=pool.total_staked,
            amount=amount,
            carry=pool.carry,
        )
        self._pools[pool_id] = replace(pool, acc_reward_per_share=acc, carry=carry)

    def _settle(self, pool_id: int, account: Account) -> UserInfo:
        pool = self.pool(pool_id)
        user = self.user_info(pool_id, account)
        owed = pending(user.amount, pool.acc_reward_per_share, user.reward_debt)
        if owed > 0:
            self._ledger.transfer(self.reward_token, account, owed, sender=self.address)
        return user

    def _store(self, pool_id: int, account: Account, amount: int) -> None:
        pool = self.pool(pool_id)
        if amount == 0:
            self._users.pop((pool_id, account), None)
        else:
            self._users[(pool_id, account)] = UserInfo(
                amount=amount, reward_debt=reward_debt(amount, pool.acc_reward_per_share)
            )

    def deposit(self, pool_id: int, amount: int, *, sender: Account) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError(f"invalid deposit amount: {amount}")
        user = self._settle(pool_id, sender)
        pool = self.pool(pool_id)
        if amount > 0:
            self._ledger.transfer_from(pool.lp_token, sender, self.address, amount, sender=self.address)
            self._pools[pool_id] = replace(pool, total_staked=pool.total_staked + amount)
        self._store(pool_id, sender, user.amount + amount)
        logger.debug("Staking deposit: pool=%d account=%s amount=%d", pool_id, sender, amount)

    def withdraw(self, pool_id: int, amount: int, *, sender: Account) -> None:
        user = self.user_info(pool_id, sender)
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0 or amount > user.amount:
            raise ValueError(f"invalid withdraw amount: {amount} (staked {user.amount})")
        self._settle(pool_id, sender)
        pool = self.pool(pool_id)
        if amount > 0:
            self._pools[pool_id] = replace(pool, total_staked=pool.total_staked - amount)
            self._ledger.transfer(pool.lp_token, sender, amount, sender=self.address)
        self._store(pool_id, sender, user.amount - amount)
        logger.debug("Staking withdraw: pool=%d account=%s amount=%d", pool_id, sender, amount)

    def emergency_withdraw(self, pool_id: int, *, sender: Account) -> None:
        pool = self.pool(pool_id)
        user = self.user_info(pool_id, sender)
        forfeited = pending(user.amount, pool.acc_reward_per_share, user.reward_debt)
        self._pools[pool_id] = replace(
            pool, total_staked=pool.total_staked - user.amount, carry=pool.carry + forfeited
        )
        self._users.pop((pool_id, sender), None)
        if user.amount > 0:
            self._ledger.transfer(pool.lp_token, sender, user.amount, sender=self.address)
        logger.debug("Staking emergency withdraw: pool=%d account=%s amount=%d", pool_id, sender, user.amount)

    # -- unit of work --------------------------------------------------

    def snapshot(self) -> tuple:
        return (list(self._pools), dict(self._users))

    def restore(self, snap: tuple) -> None:
        pools, users = snap
        self._pools = list(pools)
        self._users = dict(users)

    def __repr__(self) -> str:
        return f"InMemoryStakingVenue({len(self._pools)} pools, reward={self.reward_token})"
