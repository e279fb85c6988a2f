"""
Vault configuration.

All addresses and the pool identifier are fixed at construction. Venue handles
and the clock are injected into the engine directly; only plain values live
here so a config can be loaded from YAML.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml


BPS_DENOM = 10_000
DEFAULT_SLIPPAGE_BPS = 500  # accept >= 95% of the quoted output


@dataclass(frozen=True)
class VaultConfig:
    owner: str
    vault_address: str
    share_token: str
    asset: str
    token0: str
    token1: str
    reward_token: str
    pool_id: int

    name: str = "Compounding Vault"
    symbol: str = "cvLP"

    # Swap legs require output >= quote * (10_000 - slippage_bps) / 10_000.
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    # Venue deadline = now + swap_deadline_seconds. 0 means no deadline:
    # venue calls never expire, so there is no staleness protection.
    swap_deadline_seconds: int = 0
    # recover_erc20 is open to any caller unless this is set.
    restrict_recover_to_owner: bool = False

    def __post_init__(self) -> None:
        for name in ("owner", "vault_address", "share_token", "asset", "token0", "token1", "reward_token"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"{name} must be a non-empty string")
        if self.token0 == self.token1:
            raise ValueError("token0 and token1 must differ")
        if self.share_token == self.asset:
            raise ValueError("share_token must differ from asset")
        for name in ("pool_id", "slippage_bps", "swap_deadline_seconds"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"{name} must be a non-negative int")
        if self.slippage_bps >= BPS_DENOM:
            raise ValueError(f"slippage_bps must be < {BPS_DENOM}")
        if not isinstance(self.restrict_recover_to_owner, bool):
            raise ValueError("restrict_recover_to_owner must be a bool")

    def min_amount_out(self, quoted: int) -> int:
        """Lowest acceptable swap output for a quote."""
        return (quoted * (BPS_DENOM - self.slippage_bps)) // BPS_DENOM


def vault_config_from_mapping(obj: Mapping[str, Any]) -> VaultConfig:
    if not isinstance(obj, Mapping):
        raise TypeError("vault config must be a mapping")
    known = {f.name for f in fields(VaultConfig)}
    unknown = sorted(set(obj) - known)
    if unknown:
        raise ValueError(f"unknown vault config keys: {unknown}")
    return VaultConfig(**dict(obj))


def load_vault_config(path: Path | str) -> VaultConfig:
    """Load a `VaultConfig` from a YAML file (optionally nested under a `vault:` key)."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if isinstance(obj, Mapping) and "vault" in obj and isinstance(obj["vault"], Mapping):
        obj = obj["vault"]
    return vault_config_from_mapping(obj)


Clock = Callable[[], int]


def system_clock() -> int:
    """Wall-clock seconds; the default deadline source for venue calls."""
    return int(time.time())
