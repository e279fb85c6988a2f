"""
Reinvestment engine: a compounding strategy around `VaultAccounting`.

The engine composes a vault and serves as its hooks:
- `total_assets()` counts idle assets plus the live stake at the staking venue.
- `after_deposit` stakes freshly deposited assets.
- `before_withdraw` unstakes whatever the idle balance cannot cover.

`reinvest()` compounds accrued reward through a fixed pipeline

    IDLE -> HARVESTING -> SWAPPING_TOKEN0 -> SWAPPING_TOKEN1
         -> ADDING_LIQUIDITY -> STAKING -> IDLE

run as one unit of work. `total_deposits` and the `Reinvest` event are only
committed after the last step succeeds; any failure restores every
participant and drops straight back to IDLE.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, unique
from typing import Callable, Iterator, Optional, TypeVar

from ..state.allowances import MAX_UINT256, Allowance
from ..state.position import StrategyPosition
from .atomic import ReentrancyGuard, atomic
from .config import Clock, VaultConfig, system_clock
from .errors import (
    ReentrancyError,
    SlippageExceededError,
    UnauthorizedCallerError,
    VaultError,
    VenueCallFailedError,
    ZeroAmountError,
)
from .events import EmergencyWithdraw, EventLog, Recovered, Reinvest
from .interfaces import ExchangeVenue, FungibleLedger, StakingVenue
from .vault_accounting import VaultAccounting, require_amount


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Passed to venues when no swap deadline is configured; never expires.
NO_DEADLINE = MAX_UINT256


@unique
class ReinvestPhase(Enum):
    IDLE = "idle"
    HARVESTING = "harvesting"
    SWAPPING_TOKEN0 = "swapping_token0"
    SWAPPING_TOKEN1 = "swapping_token1"
    ADDING_LIQUIDITY = "adding_liquidity"
    STAKING = "staking"


@dataclass(frozen=True)
class ReinvestReceipt:
    """Outcome of one committed reinvestment cycle."""

    reward: int
    amount0: int
    amount1: int
    used0: int
    used1: int
    liquidity: int
    total_deposits: int


class ReinvestmentEngine:
    def __init__(
        self,
        config: VaultConfig,
        *,
        ledger: FungibleLedger,
        staking: StakingVenue,
        exchange: ExchangeVenue,
        clock: Optional[Clock] = None,
        events: Optional[EventLog] = None,
    ) -> None:
        self.config = config
        self._ledger = ledger
        self._staking = staking
        self._exchange = exchange
        self._clock = clock or system_clock
        self.events = events if events is not None else EventLog()
        self._total_deposits = 0
        self._phase = ReinvestPhase.IDLE
        self._guard = ReentrancyGuard()
        self.vault = VaultAccounting(
            ledger=ledger,
            asset=config.asset,
            share_token=config.share_token,
            address=config.vault_address,
            hooks=self,
            events=self.events,
            participants=(staking, exchange, self),
            guard=self._guard,
            name=config.name,
            symbol=config.symbol,
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self.config.vault_address

    @property
    def owner(self) -> str:
        return self.config.owner

    @property
    def total_deposits(self) -> int:
        return self._total_deposits

    @property
    def phase(self) -> ReinvestPhase:
        return self._phase

    def idle_assets(self) -> int:
        return self._ledger.balance_of(self.config.asset, self.address)

    def staked_amount(self) -> int:
        return self._venue("user_info", lambda: self._staking.user_info(self.config.pool_id, self.address)).amount

    def total_assets(self) -> int:
        return self.idle_assets() + self.staked_amount()

    def pending_reward_amount(self) -> int:
        """Reward accrued at the venue plus reward tokens the vault already holds."""
        venue_pending, _, _, _ = self._venue(
            "pending_tokens", lambda: self._staking.pending_tokens(self.config.pool_id, self.address)
        )
        return venue_pending + self._ledger.balance_of(self.config.reward_token, self.address)

    def position(self) -> StrategyPosition:
        return StrategyPosition(
            total_deposits=self._total_deposits,
            staked_amount=self.staked_amount(),
            idle_assets=self.idle_assets(),
            pending_reward=self.pending_reward_amount(),
        )

    # ------------------------------------------------------------------
    # Vault hooks
    # ------------------------------------------------------------------

    def after_deposit(self, assets: int, shares: int) -> None:
        self._stake(assets)

    def before_withdraw(self, assets: int, shares: int) -> None:
        shortfall = assets - self.idle_assets()
        if shortfall > 0:
            self._venue(
                "withdraw",
                lambda: self._staking.withdraw(self.config.pool_id, shortfall, sender=self.address),
            )

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    def reinvest(self, *, caller: str) -> ReinvestReceipt:
        """Harvest reward, swap it into both pair tokens, add liquidity and stake it.

        Liquidity is added from the vault's whole token0 / token1 balance, so
        whatever an earlier `add_liquidity` left unused is offered again.
        Leftovers held between cycles are not part of `total_assets()`.
        """
        self._only_owner(caller, "reinvest")
        with self._operation("reinvest"):
            try:
                receipt = self._run_pipeline()
            finally:
                self._phase = ReinvestPhase.IDLE
        logger.info(
            "Reinvest: reward=%d liquidity=%d total_deposits=%d",
            receipt.reward, receipt.liquidity, receipt.total_deposits,
        )
        return receipt

    def _run_pipeline(self) -> ReinvestReceipt:
        cfg = self.config

        self._enter(ReinvestPhase.HARVESTING)
        reward = self.pending_reward_amount()
        if reward == 0:
            raise ZeroAmountError("no reward to reinvest")
        # A zero-amount stake pays the venue-side pending reward out to the vault.
        self._venue("deposit", lambda: self._staking.deposit(cfg.pool_id, 0, sender=self.address))
        half0 = reward // 2
        half1 = reward - half0

        deadline = self._deadline()

        self._enter(ReinvestPhase.SWAPPING_TOKEN0)
        amount0 = self._swap_reward_for(cfg.token0, half0, deadline)

        self._enter(ReinvestPhase.SWAPPING_TOKEN1)
        amount1 = self._swap_reward_for(cfg.token1, half1, deadline)

        self._enter(ReinvestPhase.ADDING_LIQUIDITY)
        desired0 = self._ledger.balance_of(cfg.token0, self.address)
        desired1 = self._ledger.balance_of(cfg.token1, self.address)
        self._approve(cfg.token0, self._exchange.address, desired0)
        self._approve(cfg.token1, self._exchange.address, desired1)
        used0, used1, liquidity = self._venue(
            "add_liquidity",
            lambda: self._exchange.add_liquidity(
                cfg.token0, cfg.token1, desired0, desired1, 0, 0, self.address, deadline, sender=self.address
            ),
        )

        self._enter(ReinvestPhase.STAKING)
        if liquidity == 0:
            raise ZeroAmountError("add_liquidity minted nothing to stake")
        self._stake(liquidity)

        new_total = self._total_deposits + liquidity
        self._total_deposits = new_total
        self.events.emit(Reinvest(new_total_deposits=new_total))
        return ReinvestReceipt(
            reward=reward,
            amount0=amount0,
            amount1=amount1,
            used0=used0,
            used1=used1,
            liquidity=liquidity,
            total_deposits=new_total,
        )

    def _swap_reward_for(self, token: str, amount: int, deadline: int) -> int:
        """Swap `amount` reward for `token`; returns the amount of `token` obtained."""
        reward_token = self.config.reward_token
        if token == reward_token or amount == 0:
            return amount

        path = [reward_token, token]
        quoted = self._venue("get_amounts_out", lambda: self._exchange.get_amounts_out(amount, path))[-1]
        amount_out_min = self.config.min_amount_out(quoted)
        logger.debug("Quote %s->%s: in=%d quoted=%d min=%d", reward_token, token, amount, quoted, amount_out_min)

        before = self._ledger.balance_of(token, self.address)
        self._approve(reward_token, self._exchange.address, amount)
        self._venue(
            "swap_exact_tokens_for_tokens",
            lambda: self._exchange.swap_exact_tokens_for_tokens(
                amount, amount_out_min, path, self.address, deadline, sender=self.address
            ),
        )
        received = self._ledger.balance_of(token, self.address) - before
        if received < amount_out_min:
            raise SlippageExceededError(f"swap to {token} returned {received} < minimum {amount_out_min}")
        return received

    def emergency_withdraw(self, *, caller: str) -> int:
        """Pull the whole stake back into the vault, forfeiting pending reward."""
        self._only_owner(caller, "emergency_withdraw")
        with self._operation("emergency_withdraw"):
            amount = self.staked_amount()
            self._venue(
                "emergency_withdraw",
                lambda: self._staking.emergency_withdraw(self.config.pool_id, sender=self.address),
            )
            self._total_deposits = 0
            self.events.emit(EmergencyWithdraw(amount=amount))
        logger.warning("Emergency withdraw: unstaked=%d", amount)
        return amount

    def recover_erc20(self, token: str, amount: int, *, caller: str) -> None:
        """Sweep `amount` of a token held by the vault to the caller."""
        require_amount("amount", amount)
        if amount == 0:
            raise ZeroAmountError("cannot recover zero tokens")
        if self.config.restrict_recover_to_owner:
            self._only_owner(caller, "recover_erc20")
        elif caller != self.owner:
            logger.warning("recover_erc20 called by non-owner %s for %d %s", caller, amount, token)
        with self._operation("recover_erc20"):
            self._ledger.transfer(token, caller, amount, sender=self.address)
            self.events.emit(Recovered(token=token, amount=amount))
        logger.info("Recovered %d %s to %s", amount, token, caller)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _only_owner(self, caller: str, operation: str) -> None:
        if caller != self.owner:
            raise UnauthorizedCallerError(f"{operation} is restricted to the owner, called by {caller}")

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        with self._guard.enter(ReentrancyError, name):
            with atomic(self._ledger, self.events, self._staking, self._exchange, self):
                yield

    def _enter(self, phase: ReinvestPhase) -> None:
        logger.debug("Reinvest phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase

    def _deadline(self) -> int:
        seconds = self.config.swap_deadline_seconds
        if seconds == 0:
            return NO_DEADLINE
        return self._clock() + seconds

    def _approve(self, token: str, spender: str, amount: int) -> None:
        self._ledger.approve(token, spender, Allowance.bounded(amount), sender=self.address)

    def _stake(self, amount: int) -> None:
        if amount == 0:
            return
        self._approve(self.config.asset, self._staking.address, amount)
        self._venue("deposit", lambda: self._staking.deposit(self.config.pool_id, amount, sender=self.address))

    def _venue(self, call: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except VaultError:
            raise
        except Exception as exc:
            raise VenueCallFailedError(f"venue call {call} failed: {exc}") from exc

    # Only engine-owned state; venues and the ledger snapshot themselves.
    def snapshot(self) -> int:
        return self._total_deposits

    def restore(self, snap: int) -> None:
        self._total_deposits = snap

    def __repr__(self) -> str:
        return (
            f"ReinvestmentEngine(pool_id={self.config.pool_id}, asset={self.config.asset}, "
            f"total_deposits={self._total_deposits})"
        )
