"""
Local, fully in-memory deployment of the compounding vault.

Wires an `InMemoryLedger`, `InMemoryExchange` and `InMemoryStakingVenue`
around a `ReinvestmentEngine`, seeding the three pairs the strategy needs
(token0/token1 for the underlying asset, and reward/token0, reward/token1 for
the swap legs). Used by the offline demo and by the tests.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from ..core.config import VaultConfig
from ..core.reinvest import ReinvestmentEngine
from ..core.vault_accounting import VaultAccounting
from ..state.allowances import Allowance
from .exchange import InMemoryExchange, lp_token_for, sort_tokens
from .ledger import InMemoryLedger
from .staking import InMemoryStakingVenue


SEEDER = "seeder"
REWARDER = "rewarder"
DEFAULT_SEED_RESERVE = 10**9


class ManualClock:
    """Deterministic clock for deadlines; advance it explicitly."""

    def __init__(self, now: int = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@dataclass
class LocalDeployment:
    config: VaultConfig
    ledger: InMemoryLedger
    exchange: InMemoryExchange
    staking: InMemoryStakingVenue
    engine: ReinvestmentEngine
    clock: ManualClock

    @property
    def vault(self) -> VaultAccounting:
        return self.engine.vault

    def fund_asset(self, account: str, amount: int, *, approve_vault: bool = True) -> None:
        """Give `account` exactly `amount` LP units (taken from the seeder) and optionally approve the vault."""
        self.ledger.transfer(self.config.asset, account, amount, sender=SEEDER)
        if approve_vault:
            self.ledger.approve(self.config.asset, self.config.vault_address, Allowance.unlimited(), sender=account)

    def accrue_reward(self, amount: int) -> None:
        """Fund `amount` of reward into the vault's staking pool."""
        self.ledger.mint(self.config.reward_token, REWARDER, amount)
        self.ledger.approve(
            self.config.reward_token, self.staking.address, Allowance.bounded(amount), sender=REWARDER
        )
        self.staking.notify_reward(self.config.pool_id, amount, sender=REWARDER)


def build_local_deployment(
    *,
    token0: str = "WAVAX",
    token1: str = "USDC",
    reward_token: str = "JOE",
    owner: str = "owner",
    vault_address: str = "vault",
    seed_reserve: int = DEFAULT_SEED_RESERVE,
    fee_bps: int = 30,
    clock: Optional[ManualClock] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> LocalDeployment:
    clock = clock or ManualClock()
    ledger = InMemoryLedger()
    for token in (token0, token1, reward_token):
        ledger.register_token(token)

    exchange = InMemoryExchange(ledger, clock=clock, default_fee_bps=fee_bps)
    staking = InMemoryStakingVenue(ledger, reward_token)

    asset = lp_token_for(token0, token1)
    config = VaultConfig(
        owner=owner,
        vault_address=vault_address,
        share_token=f"cv:{asset}",
        asset=asset,
        token0=token0,
        token1=token1,
        reward_token=reward_token,
        pool_id=0,
    )
    if overrides:
        config = replace(config, **dict(overrides))
    ledger.register_token(config.share_token, ledger.decimals(asset))

    def seed(token_a: str, token_b: str) -> None:
        for token in (token_a, token_b):
            ledger.mint(token, SEEDER, seed_reserve)
            ledger.approve(token, exchange.address, Allowance.bounded(seed_reserve), sender=SEEDER)
        exchange.add_liquidity(token_a, token_b, seed_reserve, seed_reserve, 0, 0, SEEDER, clock(), sender=SEEDER)

    seeded = set()
    for token_a, token_b in ((token0, token1), (reward_token, token0), (reward_token, token1)):
        if token_a == token_b or sort_tokens(token_a, token_b) in seeded:
            continue
        seeded.add(sort_tokens(token_a, token_b))
        seed(token_a, token_b)

    pool_id = staking.add_pool(asset)
    if pool_id != config.pool_id:
        config = replace(config, pool_id=pool_id)

    engine = ReinvestmentEngine(config, ledger=ledger, staking=staking, exchange=exchange, clock=clock)
    return LocalDeployment(
        config=config,
        ledger=ledger,
        exchange=exchange,
        staking=staking,
        engine=engine,
        clock=clock,
    )
