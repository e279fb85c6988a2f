"""Exception types for the vault and its reinvestment strategy.

Every error aborts the enclosing operation; the atomic unit of work in
``atomic.py`` restores all participants before the exception propagates.
``code`` is a stable identifier used by the integration shell.
"""

from __future__ import annotations


class VaultError(Exception):
    """Base class for vault failures."""

    code: str = "vault_error"


class ZeroSharesError(VaultError):
    """A deposit would mint zero shares."""

    code = "zero_shares"


class ZeroAssetsError(VaultError):
    """A redeem would pay out zero assets."""

    code = "zero_assets"


class ZeroAmountError(VaultError):
    """An amount that must be positive is zero."""

    code = "zero_amount"


class AllowanceExceededError(VaultError):
    """The spender's allowance does not cover the requested amount."""

    code = "allowance_exceeded"


class UnauthorizedCallerError(VaultError):
    """An owner-gated operation was called by someone else."""

    code = "unauthorized"


class SlippageExceededError(VaultError):
    """A swap delivered (or would deliver) less than its minimum output."""

    code = "slippage_exceeded"


class VenueCallFailedError(VaultError):
    """An external venue call failed."""

    code = "venue_call_failed"


class ReentrancyError(VaultError):
    """A mutating operation was entered while another one is in flight."""

    code = "reentrancy"


class InsufficientBalanceError(VaultError, ValueError):
    """A transfer or burn exceeds the holder's balance."""

    code = "insufficient_balance"
