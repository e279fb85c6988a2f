"""
Share-based vault accounting.

Depositors hand the vault an underlying asset and receive shares that are a
proportional claim on `total_assets()`. Conversion rounding always favours the
vault (see `src/kernels/python/share_math.py`).

Ordering rules that keep a reentrant caller from observing a mismatched
supply / balance pair:
- deposit / mint: pull the assets in *before* minting shares.
- withdraw / redeem: burn the shares *before* paying the assets out.

Where the assets go after a deposit (and come from before a withdrawal) is
delegated to a `VaultHooks` implementation. `IdleHooks` keeps them in the
vault; the reinvestment engine stakes them.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from ..kernels.python.share_math import Rounding, to_assets, to_shares
from ..state.allowances import MAX_UINT256
from .atomic import ReentrancyGuard, atomic
from .errors import (
    AllowanceExceededError,
    ReentrancyError,
    ZeroAmountError,
    ZeroAssetsError,
    ZeroSharesError,
)
from .events import Deposit, EventLog, Withdraw
from .interfaces import FungibleLedger, VaultHooks


logger = logging.getLogger(__name__)

# Returned by max_deposit / max_mint: the vault imposes no cap.
UNBOUNDED = MAX_UINT256


def require_amount(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


class IdleHooks:
    """Default hooks: assets stay in the vault, nothing is routed anywhere."""

    def __init__(self, ledger: FungibleLedger, asset: str, vault_address: str) -> None:
        self._ledger = ledger
        self._asset = asset
        self._vault_address = vault_address

    def total_assets(self) -> int:
        return self._ledger.balance_of(self._asset, self._vault_address)

    def before_withdraw(self, assets: int, shares: int) -> None:
        return None

    def after_deposit(self, assets: int, shares: int) -> None:
        return None


class VaultAccounting:
    """Deposit / mint / withdraw / redeem and the asset <-> share conversions."""

    def __init__(
        self,
        *,
        ledger: FungibleLedger,
        asset: str,
        share_token: str,
        address: str,
        hooks: Optional[VaultHooks] = None,
        events: Optional[EventLog] = None,
        participants: Sequence[object] = (),
        guard: Optional[ReentrancyGuard] = None,
        name: str = "Vault",
        symbol: str = "vTKN",
    ) -> None:
        self._ledger = ledger
        self.asset = asset
        self.share_token = share_token
        self.address = address
        self.name = name
        self.symbol = symbol
        self.events = events if events is not None else EventLog()
        self._hooks: VaultHooks = hooks if hooks is not None else IdleHooks(ledger, asset, address)
        self._participants = (ledger, self.events, *participants)
        self._guard = guard if guard is not None else ReentrancyGuard()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def in_operation(self) -> bool:
        return self._guard.entered

    def decimals(self) -> int:
        return self._ledger.decimals(self.asset)

    def total_assets(self) -> int:
        return self._hooks.total_assets()

    def total_supply(self) -> int:
        return self._ledger.total_supply(self.share_token)

    def balance_of(self, account: str) -> int:
        return self._ledger.balance_of(self.share_token, account)

    def _to_shares(self, assets: int, rounding: Rounding) -> int:
        require_amount("assets", assets)
        return to_shares(
            assets=assets,
            total_assets=self.total_assets(),
            total_supply=self.total_supply(),
            rounding=rounding,
        )

    def _to_assets(self, shares: int, rounding: Rounding) -> int:
        require_amount("shares", shares)
        return to_assets(
            shares=shares,
            total_assets=self.total_assets(),
            total_supply=self.total_supply(),
            rounding=rounding,
        )

    def convert_to_shares(self, assets: int) -> int:
        return self._to_shares(assets, Rounding.DOWN)

    def convert_to_assets(self, shares: int) -> int:
        return self._to_assets(shares, Rounding.DOWN)

    def preview_deposit(self, assets: int) -> int:
        return self._to_shares(assets, Rounding.DOWN)

    def preview_mint(self, shares: int) -> int:
        return self._to_assets(shares, Rounding.UP)

    def preview_withdraw(self, assets: int) -> int:
        return self._to_shares(assets, Rounding.UP)

    def preview_redeem(self, shares: int) -> int:
        return self._to_assets(shares, Rounding.DOWN)

    def max_deposit(self, account: str) -> int:
        return UNBOUNDED

    def max_mint(self, account: str) -> int:
        return UNBOUNDED

    def max_withdraw(self, owner: str) -> int:
        return self.convert_to_assets(self.balance_of(owner))

    def max_redeem(self, owner: str) -> int:
        return self.balance_of(owner)

    def price_per_share(self) -> int:
        """Assets backing one whole share (10**decimals units), rounded down."""
        return self.convert_to_assets(10 ** self.decimals())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        with self._guard.enter(ReentrancyError, name):
            with atomic(*self._participants):
                yield

    def deposit(self, assets: int, receiver: str, *, caller: str) -> int:
        """Deposit exactly `assets`, minting shares (rounded down) to `receiver`."""
        require_amount("assets", assets)
        with self._operation("deposit"):
            shares = self.preview_deposit(assets)
            if shares == 0:
                raise ZeroSharesError(f"deposit of {assets} assets mints zero shares")
            self._receive_and_mint(caller, receiver, assets, shares)
        logger.info("Deposit: caller=%s receiver=%s assets=%d shares=%d", caller, receiver, assets, shares)
        return shares

    def mint(self, shares: int, receiver: str, *, caller: str) -> int:
        """Mint exactly `shares` to `receiver`, charging assets rounded up."""
        require_amount("shares", shares)
        if shares == 0:
            raise ZeroAmountError("cannot mint zero shares")
        with self._operation("mint"):
            assets = self.preview_mint(shares)
            if assets == 0:
                raise ZeroAssetsError(f"minting {shares} shares costs zero assets")
            self._receive_and_mint(caller, receiver, assets, shares)
        logger.info("Mint: caller=%s receiver=%s assets=%d shares=%d", caller, receiver, assets, shares)
        return assets

    def withdraw(self, assets: int, receiver: str, owner: str, *, caller: str) -> int:
        """Pay exactly `assets` to `receiver`, burning shares (rounded up) from `owner`."""
        require_amount("assets", assets)
        if assets == 0:
            raise ZeroAmountError("cannot withdraw zero assets")
        with self._operation("withdraw"):
            shares = self.preview_withdraw(assets)
            self._burn_and_pay(caller, receiver, owner, assets, shares)
        logger.info(
            "Withdraw: caller=%s receiver=%s owner=%s assets=%d shares=%d", caller, receiver, owner, assets, shares
        )
        return shares

    def redeem(self, shares: int, receiver: str, owner: str, *, caller: str) -> int:
        """Burn exactly `shares` from `owner`, paying assets (rounded down) to `receiver`."""
        require_amount("shares", shares)
        with self._operation("redeem"):
            assets = self.preview_redeem(shares)
            if assets == 0:
                raise ZeroAssetsError(f"redeeming {shares} shares pays zero assets")
            self._burn_and_pay(caller, receiver, owner, assets, shares)
        logger.info(
            "Redeem: caller=%s receiver=%s owner=%s assets=%d shares=%d", caller, receiver, owner, assets, shares
        )
        return assets

    def _receive_and_mint(self, caller: str, receiver: str, assets: int, shares: int) -> None:
        # Transfer first: shares must not exist before the assets backing them do.
        self._ledger.transfer_from(self.asset, caller, self.address, assets, sender=self.address)
        self._ledger.mint(self.share_token, receiver, shares)
        self._hooks.after_deposit(assets, shares)
        self.events.emit(Deposit(caller=caller, owner=receiver, assets=assets, shares=shares))

    def _burn_and_pay(self, caller: str, receiver: str, owner: str, assets: int, shares: int) -> None:
        if caller != owner:
            self._spend_allowance(owner, caller, shares)
        self._hooks.before_withdraw(assets, shares)
        # Burn first: the claim disappears before the assets leave.
        self._ledger.burn(self.share_token, owner, shares)
        self._ledger.transfer(self.asset, receiver, assets, sender=self.address)
        self.events.emit(Withdraw(caller=caller, receiver=receiver, owner=owner, assets=assets, shares=shares))

    def _spend_allowance(self, owner: str, spender: str, shares: int) -> None:
        current = self._ledger.allowance(self.share_token, owner, spender)
        if not current.covers(shares):
            raise AllowanceExceededError(
                f"{spender} may move {current.amount} shares of {owner}, requested {shares}"
            )
        if not current.is_unlimited:
            self._ledger.approve(self.share_token, spender, current.after_spend(shares), sender=owner)

    def __repr__(self) -> str:
        return f"VaultAccounting({self.symbol}, asset={self.asset}, address={self.address})"
