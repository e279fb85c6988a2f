"""
Token balance tracking.

Implements BalanceTable[Account, TokenId] -> Amount for every token the
in-memory ledger hosts (underlying asset, pair constituents, reward token and
the vault's own share token).
"""

from __future__ import annotations

from typing import Dict, Tuple


# Type aliases
Account = str  # opaque account / contract address
TokenId = str  # opaque token identifier
Amount = int  # Non-negative integer (arbitrary precision)


class BalanceTable:
    """
    Balance table mapping (account, token) -> amount.

    Zero balances are dropped so the table stays sparse. Do not rely on dict
    iteration order; sort keys explicitly when a stable order matters.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[Account, TokenId], Amount] = {}

    def get(self, account: Account, token: TokenId) -> Amount:
        """Get balance for (account, token). Returns 0 if not found."""
        return self._balances.get((account, token), 0)

    def set(self, account: Account, token: TokenId, amount: Amount) -> None:
        """
        Set balance for (account, token).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((account, token), None)
        else:
            self._balances[(account, token)] = amount

    def add(self, account: Account, token: TokenId, delta: int) -> None:
        """
        Add delta to a balance (delta may be negative).

        Raises:
            ValueError: If the resulting balance would be negative
        """
        current = self.get(account, token)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance of {token} for {account}: {current} + {delta} = {new_balance} < 0"
            )
        self.set(account, token, new_balance)

    def subtract(self, account: Account, token: TokenId, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, token, -delta)

    def total(self, token: TokenId) -> Amount:
        """Sum of all balances held in `token`."""
        return sum(amount for (_, t), amount in self._balances.items() if t == token)

    def get_balances_for_token(self, token: TokenId) -> Dict[Account, Amount]:
        """All non-zero balances for a token, keyed by account."""
        return {acct: amount for (acct, t), amount in self._balances.items() if t == token}

    def copy(self) -> "BalanceTable":
        clone = BalanceTable()
        clone._balances = dict(self._balances)
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BalanceTable):
            return NotImplemented
        return self._balances == other._balances

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
