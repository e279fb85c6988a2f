from __future__ import annotations

import pytest

from src.core.errors import (
    ReentrancyError,
    SlippageExceededError,
    UnauthorizedCallerError,
    VenueCallFailedError,
    ZeroAmountError,
)
from src.core.events import EmergencyWithdraw, Recovered, Reinvest
from src.core.reinvest import ReinvestmentEngine, ReinvestPhase
from src.state.position import StrategyPosition
from src.venues.exchange import InMemoryExchange
from src.venues.local import LocalDeployment, build_local_deployment


def _funded(**kwargs) -> LocalDeployment:
    dep = build_local_deployment(**kwargs)
    dep.fund_asset("alice", 1000)
    dep.fund_asset("bob", 500)
    dep.vault.deposit(1000, "alice", caller="alice")
    dep.vault.deposit(500, "bob", caller="bob")
    return dep


class SkimmingExchange(InMemoryExchange):
    """Delivers swap output, then skims part of it (a fee-on-transfer token)."""

    def __init__(self, *args, skim_bps: int, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.skim_bps = skim_bps

    def swap_exact_tokens_for_tokens(self, amount_in, amount_out_min, path, to, deadline, *, sender):
        amounts = super().swap_exact_tokens_for_tokens(amount_in, amount_out_min, path, to, deadline, sender=sender)
        skimmed = amounts[-1] * self.skim_bps // 10_000
        self._ledger.transfer(path[-1], "skimmer", skimmed, sender=to)
        return amounts


class SlowExchange(InMemoryExchange):
    """Time passes between quoting and executing."""

    def get_amounts_out(self, amount_in, path):
        amounts = super().get_amounts_out(amount_in, path)
        self._clock.advance(30)
        return amounts


def _rewire(dep: LocalDeployment, exchange_cls, **kwargs) -> ReinvestmentEngine:
    """Swap the deployment's exchange for `exchange_cls`, keeping every pair it already holds."""
    exchange = exchange_cls(dep.ledger, clock=dep.clock, **kwargs)
    exchange.restore(dep.exchange.snapshot())
    engine = ReinvestmentEngine(
        dep.config, ledger=dep.ledger, staking=dep.staking, exchange=exchange, clock=dep.clock
    )
    dep.exchange = exchange
    dep.engine = engine
    return engine


def test_deposits_are_staked() -> None:
    dep = _funded()
    engine = dep.engine
    assert engine.staked_amount() == 1500
    assert engine.idle_assets() == 0
    assert engine.total_assets() == 1500
    assert engine.total_deposits == 0


def test_reinvest_compounds_reward_into_share_price() -> None:
    dep = _funded()
    dep.accrue_reward(150)
    assert dep.engine.pending_reward_amount() == 150

    receipt = dep.engine.reinvest(caller="owner")

    assert receipt.reward == 150
    assert (receipt.amount0, receipt.amount1) == (73, 73)
    assert receipt.liquidity == 73
    assert receipt.total_deposits == 73
    assert dep.engine.total_deposits == 73
    assert dep.engine.phase is ReinvestPhase.IDLE
    assert dep.vault.total_assets() == 1573
    assert dep.vault.total_supply() == 1500
    assert dep.engine.events.last() == Reinvest(new_total_deposits=73)

    assert dep.vault.redeem(500, "bob", "bob", caller="bob") == 524
    assert dep.ledger.balance_of(dep.config.asset, "bob") == 524


def test_position_snapshot() -> None:
    dep = _funded()
    dep.accrue_reward(45)
    assert dep.engine.position() == StrategyPosition(
        total_deposits=0, staked_amount=1500, idle_assets=0, pending_reward=45
    )


def test_undistributed_reward_unit_is_paid_on_next_accrual() -> None:
    dep = _funded()
    # 40 over 1500 staked leaves one unit carried at the venue.
    dep.accrue_reward(40)
    assert dep.engine.pending_reward_amount() == 39
    dep.accrue_reward(5)
    assert dep.engine.pending_reward_amount() == 45


def test_reinvest_is_owner_only() -> None:
    dep = _funded()
    dep.accrue_reward(150)
    with pytest.raises(UnauthorizedCallerError):
        dep.engine.reinvest(caller="alice")
    assert dep.engine.pending_reward_amount() == 150


def test_reinvest_without_reward_fails() -> None:
    dep = _funded()
    with pytest.raises(ZeroAmountError):
        dep.engine.reinvest(caller="owner")
    assert dep.engine.phase is ReinvestPhase.IDLE


def test_reinvest_twice_accumulates_total_deposits() -> None:
    dep = _funded()
    dep.accrue_reward(150)
    first = dep.engine.reinvest(caller="owner")
    dep.accrue_reward(1000)
    second = dep.engine.reinvest(caller="owner")
    assert second.total_deposits == first.liquidity + second.liquidity
    assert len(dep.engine.events.of_type(Reinvest)) == 2


def test_short_delivery_rolls_back_whole_cycle() -> None:
    dep = _funded()
    engine = _rewire(dep, SkimmingExchange, skim_bps=1000)
    dep.accrue_reward(150)
    before = dep.ledger.snapshot()

    with pytest.raises(SlippageExceededError):
        engine.reinvest(caller="owner")

    assert engine.phase is ReinvestPhase.IDLE
    assert engine.total_deposits == 0
    assert engine.pending_reward_amount() == 150
    assert dep.ledger.snapshot() == before
    assert engine.events.of_type(Reinvest) == []


def test_small_skim_within_slippage_is_accepted() -> None:
    dep = _funded()
    engine = _rewire(dep, SkimmingExchange, skim_bps=300)
    dep.accrue_reward(1000)
    receipt = engine.reinvest(caller="owner")
    assert receipt.liquidity > 0
    assert engine.total_deposits == receipt.liquidity


def test_tighter_slippage_rejects_the_same_skim() -> None:
    dep = _funded(overrides={"slippage_bps": 100})
    engine = _rewire(dep, SkimmingExchange, skim_bps=300)
    dep.accrue_reward(1000)
    with pytest.raises(SlippageExceededError):
        engine.reinvest(caller="owner")


def test_default_deadline_never_expires() -> None:
    dep = _funded()
    engine = _rewire(dep, SlowExchange)
    dep.accrue_reward(150)
    receipt = engine.reinvest(caller="owner")
    assert receipt.liquidity == 73
    assert dep.clock() > 1_700_000_000


def test_short_deadline_expires_when_time_passes() -> None:
    dep = _funded(overrides={"swap_deadline_seconds": 10})
    engine = _rewire(dep, SlowExchange)
    dep.accrue_reward(150)
    with pytest.raises(VenueCallFailedError, match="expired"):
        engine.reinvest(caller="owner")
    assert engine.pending_reward_amount() == 150


def test_configured_deadline_tolerates_delay() -> None:
    dep = _funded(overrides={"swap_deadline_seconds": 300})
    engine = _rewire(dep, SlowExchange)
    dep.accrue_reward(150)
    assert engine.reinvest(caller="owner").liquidity > 0


def test_reward_token_leg_is_not_swapped() -> None:
    dep = _funded(token0="JOE", token1="USDC", reward_token="JOE")
    dep.accrue_reward(150)
    receipt = dep.engine.reinvest(caller="owner")
    assert receipt.amount0 == 75
    assert receipt.amount1 == 73
    assert receipt.liquidity > 0
    # Unused constituent tokens stay with the vault.
    assert dep.ledger.balance_of("JOE", "vault") == 75 - receipt.used0
    assert dep.ledger.balance_of("USDC", "vault") == 73 - receipt.used1


def test_venue_failure_is_wrapped_and_rolled_back(monkeypatch) -> None:
    dep = build_local_deployment()
    dep.fund_asset("alice", 1000)

    def broken(pool_id, amount, *, sender):
        raise RuntimeError("venue paused")

    monkeypatch.setattr(dep.staking, "deposit", broken)
    with pytest.raises(VenueCallFailedError) as info:
        dep.vault.deposit(1000, "alice", caller="alice")
    assert isinstance(info.value.__cause__, RuntimeError)
    assert dep.vault.total_supply() == 0
    assert dep.ledger.balance_of(dep.config.asset, "alice") == 1000


def test_emergency_withdraw_unstakes_everything() -> None:
    dep = _funded()
    dep.accrue_reward(150)
    dep.engine.reinvest(caller="owner")
    dep.accrue_reward(90)

    with pytest.raises(UnauthorizedCallerError):
        dep.engine.emergency_withdraw(caller="bob")
    amount = dep.engine.emergency_withdraw(caller="owner")

    assert amount == 1573
    assert dep.engine.staked_amount() == 0
    assert dep.engine.idle_assets() == 1573
    assert dep.engine.total_deposits == 0
    assert dep.engine.pending_reward_amount() == 0
    assert dep.engine.events.last() == EmergencyWithdraw(amount=1573)

    # Withdrawals keep working from the idle balance.
    assert dep.vault.redeem(500, "bob", "bob", caller="bob") == 524


def test_deposit_after_emergency_withdraw_restakes() -> None:
    dep = _funded()
    dep.engine.emergency_withdraw(caller="owner")
    dep.fund_asset("carol", 300)
    dep.vault.deposit(300, "carol", caller="carol")
    assert dep.engine.staked_amount() == 300
    assert dep.engine.idle_assets() == 1500


def test_withdraw_only_unstakes_the_shortfall() -> None:
    dep = _funded()
    dep.ledger.transfer(dep.config.asset, "vault", 100, sender="seeder")
    dep.vault.withdraw(150, "alice", "alice", caller="alice")
    assert dep.engine.idle_assets() == 0
    assert dep.engine.staked_amount() == 1450


def test_recover_sweeps_to_caller() -> None:
    dep = _funded()
    dep.ledger.mint("USDC", "vault", 42)
    dep.engine.recover_erc20("USDC", 42, caller="owner")
    assert dep.ledger.balance_of("USDC", "owner") == 42
    assert dep.engine.events.last() == Recovered(token="USDC", amount=42)
    with pytest.raises(ZeroAmountError):
        dep.engine.recover_erc20("USDC", 0, caller="owner")
    with pytest.raises(TypeError):
        dep.engine.recover_erc20("USDC", True, caller="owner")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        dep.engine.recover_erc20("USDC", -1, caller="owner")


def test_recover_open_to_anyone_by_default(caplog) -> None:
    dep = _funded()
    dep.ledger.mint("USDC", "vault", 5)
    with caplog.at_level("WARNING", logger="src.core.reinvest"):
        dep.engine.recover_erc20("USDC", 5, caller="mallory")
    assert dep.ledger.balance_of("USDC", "mallory") == 5
    assert "non-owner" in caplog.text


def test_recover_can_be_restricted_to_owner() -> None:
    dep = _funded(overrides={"restrict_recover_to_owner": True})
    dep.ledger.mint("USDC", "vault", 5)
    with pytest.raises(UnauthorizedCallerError):
        dep.engine.recover_erc20("USDC", 5, caller="mallory")
    dep.engine.recover_erc20("USDC", 5, caller="owner")


def test_reinvest_cannot_run_inside_a_deposit() -> None:
    dep = _funded()
    dep.accrue_reward(150)
    dep.fund_asset("carol", 100)
    attempts = []

    def observer(token, from_, to, amount):
        if token == dep.config.asset and to == "vault":
            try:
                dep.engine.reinvest(caller="owner")
            except ReentrancyError:
                attempts.append(dep.engine.phase)

    dep.ledger.add_transfer_observer(observer)
    dep.vault.deposit(100, "carol", caller="carol")
    assert attempts == [ReinvestPhase.IDLE]
    assert dep.engine.total_deposits == 0
    assert dep.engine.staked_amount() == 1600


def test_leftover_pair_tokens_are_added_next_cycle() -> None:
    dep = _funded()
    dep.ledger.mint("WAVAX", "vault", 10)
    dep.ledger.mint("USDC", "vault", 10)
    dep.accrue_reward(150)

    receipt = dep.engine.reinvest(caller="owner")

    assert (receipt.amount0, receipt.amount1) == (73, 73)
    assert (receipt.used0, receipt.used1) == (83, 83)
    assert receipt.liquidity == 83
    assert dep.ledger.balance_of("WAVAX", "vault") == 0
    assert dep.ledger.balance_of("USDC", "vault") == 0


def test_approvals_go_to_the_venue_address() -> None:
    dep = _funded()
    engine = _rewire(dep, InMemoryExchange, address="router")
    dep.accrue_reward(150)
    assert engine.reinvest(caller="owner").liquidity == 73
    assert dep.ledger.allowance("JOE", "vault", "exchange").amount == 0
