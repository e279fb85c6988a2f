"""
Core vault algorithms
"""

from .atomic import ReentrancyGuard, atomic
from .config import VaultConfig, load_vault_config, system_clock, vault_config_from_mapping
from .errors import (
    AllowanceExceededError,
    InsufficientBalanceError,
    ReentrancyError,
    SlippageExceededError,
    UnauthorizedCallerError,
    VaultError,
    VenueCallFailedError,
    ZeroAmountError,
    ZeroAssetsError,
    ZeroSharesError,
)
from .events import Deposit, EmergencyWithdraw, EventLog, Recovered, Reinvest, Withdraw
from .interfaces import ExchangeVenue, FungibleLedger, StakingVenue, UserInfo, VaultHooks
from .reinvest import ReinvestmentEngine, ReinvestPhase, ReinvestReceipt
from .vault_accounting import UNBOUNDED, IdleHooks, VaultAccounting

__all__ = [
    "atomic",
    "ReentrancyGuard",
    "VaultConfig",
    "load_vault_config",
    "vault_config_from_mapping",
    "system_clock",
    "VaultError",
    "ZeroSharesError",
    "ZeroAssetsError",
    "ZeroAmountError",
    "AllowanceExceededError",
    "UnauthorizedCallerError",
    "SlippageExceededError",
    "VenueCallFailedError",
    "ReentrancyError",
    "InsufficientBalanceError",
    "Deposit",
    "Withdraw",
    "Reinvest",
    "Recovered",
    "EmergencyWithdraw",
    "EventLog",
    "FungibleLedger",
    "StakingVenue",
    "ExchangeVenue",
    "VaultHooks",
    "UserInfo",
    "VaultAccounting",
    "IdleHooks",
    "UNBOUNDED",
    "ReinvestmentEngine",
    "ReinvestPhase",
    "ReinvestReceipt",
]
