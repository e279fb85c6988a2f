"""
In-memory reference collaborators: fungible ledger, exchange venue, staking venue.

Deterministic and snapshot-capable, so they can take part in the vault's
atomic units of work. Used by the tests and the offline demo.
"""

from .exchange import InMemoryExchange, Pair, lp_token_for, sort_tokens
from .ledger import InMemoryLedger
from .local import LocalDeployment, ManualClock, build_local_deployment
from .staking import InMemoryStakingVenue, StakingPool

__all__ = [
    "InMemoryLedger",
    "InMemoryExchange",
    "Pair",
    "lp_token_for",
    "sort_tokens",
    "InMemoryStakingVenue",
    "StakingPool",
    "LocalDeployment",
    "ManualClock",
    "build_local_deployment",
]
