"""
In-memory fungible ledger.

Hosts every token the vault touches: balances (via `BalanceTable`), total
supplies, allowances and decimals. Supports `snapshot()` / `restore()` so it
can take part in atomic units of work, and transfer observers so tests can
act from inside a transfer (e.g. attempt a reentrant vault call).
"""

from __future__ import annotations

from typing import Callable, Dict, List, Tuple

from ..core.errors import AllowanceExceededError, InsufficientBalanceError
from ..state.allowances import NO_ALLOWANCE, Allowance
from ..state.balances import Account, BalanceTable, TokenId


DEFAULT_DECIMALS = 18

TransferObserver = Callable[[TokenId, Account, Account, int], None]


def _require_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TypeError("amount must be an int")
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")


class InMemoryLedger:
    def __init__(self) -> None:
        self._balances = BalanceTable()
        self._supply: Dict[TokenId, int] = {}
        self._allowances: Dict[Tuple[TokenId, Account, Account], Allowance] = {}
        self._decimals: Dict[TokenId, int] = {}
        self._observers: List[TransferObserver] = []

    def register_token(self, token: TokenId, decimals: int = DEFAULT_DECIMALS) -> None:
        if not isinstance(decimals, int) or isinstance(decimals, bool) or not (0 <= decimals <= 77):
            raise ValueError(f"decimals out of range: {decimals}")
        self._decimals[token] = decimals

    def add_transfer_observer(self, observer: TransferObserver) -> None:
        """Call `observer(token, from_, to, amount)` after every transfer settles."""
        self._observers.append(observer)

    def remove_transfer_observer(self, observer: TransferObserver) -> None:
        self._observers.remove(observer)

    # -- views ---------------------------------------------------------

    def balance_of(self, token: TokenId, account: Account) -> int:
        return self._balances.get(account, token)

    def total_supply(self, token: TokenId) -> int:
        return self._supply.get(token, 0)

    def decimals(self, token: TokenId) -> int:
        return self._decimals.get(token, DEFAULT_DECIMALS)

    def allowance(self, token: TokenId, owner: Account, spender: Account) -> Allowance:
        return self._allowances.get((token, owner, spender), NO_ALLOWANCE)

    # -- mutations -----------------------------------------------------

    def approve(self, token: TokenId, spender: Account, allowance: Allowance, *, sender: Account) -> None:
        if not isinstance(allowance, Allowance):
            raise TypeError("allowance must be an Allowance")
        if allowance == NO_ALLOWANCE:
            self._allowances.pop((token, sender, spender), None)
        else:
            self._allowances[(token, sender, spender)] = allowance

    def transfer(self, token: TokenId, to: Account, amount: int, *, sender: Account) -> None:
        _require_amount(amount)
        self._move(token, sender, to, amount)

    def transfer_from(self, token: TokenId, from_: Account, to: Account, amount: int, *, sender: Account) -> None:
        _require_amount(amount)
        if sender != from_:
            current = self.allowance(token, from_, sender)
            if not current.covers(amount):
                raise AllowanceExceededError(
                    f"{sender} may move {current.amount} {token} of {from_}, requested {amount}"
                )
            if not current.is_unlimited:
                self.approve(token, sender, current.after_spend(amount), sender=from_)
        self._move(token, from_, to, amount)

    def mint(self, token: TokenId, to: Account, amount: int) -> None:
        _require_amount(amount)
        self._balances.add(to, token, amount)
        self._supply[token] = self.total_supply(token) + amount

    def burn(self, token: TokenId, from_: Account, amount: int) -> None:
        _require_amount(amount)
        held = self.balance_of(token, from_)
        if held < amount:
            raise InsufficientBalanceError(f"cannot burn {amount} {token} from {from_}: balance {held}")
        self._balances.subtract(from_, token, amount)
        self._supply[token] = self.total_supply(token) - amount

    def _move(self, token: TokenId, from_: Account, to: Account, amount: int) -> None:
        held = self.balance_of(token, from_)
        if held < amount:
            raise InsufficientBalanceError(f"{from_} holds {held} {token}, cannot move {amount}")
        self._balances.subtract(from_, token, amount)
        self._balances.add(to, token, amount)
        for observer in tuple(self._observers):
            observer(token, from_, to, amount)

    # -- unit of work --------------------------------------------------

    def snapshot(self) -> tuple:
        return (self._balances.copy(), dict(self._supply), dict(self._allowances))

    def restore(self, snap: tuple) -> None:
        balances, supply, allowances = snap
        self._balances = balances.copy()
        self._supply = dict(supply)
        self._allowances = dict(allowances)

    def __repr__(self) -> str:
        return f"InMemoryLedger({len(self._supply)} tokens, {self._balances!r})"
