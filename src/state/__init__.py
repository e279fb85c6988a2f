"""
State records for the compounding vault
"""

from .allowances import Allowance, AllowanceKind, MAX_UINT256, NO_ALLOWANCE
from .balances import Account, Amount, BalanceTable, TokenId
from .position import StrategyPosition

__all__ = [
    "Account",
    "Amount",
    "TokenId",
    "BalanceTable",
    "Allowance",
    "AllowanceKind",
    "MAX_UINT256",
    "NO_ALLOWANCE",
    "StrategyPosition",
]
