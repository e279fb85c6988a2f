"""
In-memory exchange venue (router + constant-product pairs).

Each pair holds its reserves as ordinary ledger balances at the pair's own
address and issues an LP token through the ledger. Swaps may route through
several pairs (`path` of length >= 2). Every mutating call checks its deadline
against the injected clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from ..core.config import Clock, system_clock
from ..core.errors import SlippageExceededError
from ..kernels.python.pair_math import MINIMUM_LIQUIDITY, get_amount_out, liquidity_to_mint, optimal_amounts
from ..state.balances import Account, TokenId
from .ledger import InMemoryLedger


logger = logging.getLogger(__name__)

DEFAULT_FEE_BPS = 30
DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"


@dataclass(frozen=True)
class Pair:
    token0: TokenId
    token1: TokenId
    lp_token: TokenId
    fee_bps: int

    @property
    def address(self) -> Account:
        return self.lp_token


def sort_tokens(token_a: TokenId, token_b: TokenId) -> Tuple[TokenId, TokenId]:
    if token_a == token_b:
        raise ValueError(f"identical tokens: {token_a}")
    return (token_a, token_b) if token_a < token_b else (token_b, token_a)


def lp_token_for(token_a: TokenId, token_b: TokenId) -> TokenId:
    token0, token1 = sort_tokens(token_a, token_b)
    return f"LP:{token0}/{token1}"


class InMemoryExchange:
    def __init__(
        self,
        ledger: InMemoryLedger,
        *,
        address: Account = "exchange",
        clock: Optional[Clock] = None,
        default_fee_bps: int = DEFAULT_FEE_BPS,
    ) -> None:
        self._ledger = ledger
        self.address = address
        self._clock = clock or system_clock
        self.default_fee_bps = default_fee_bps
        self._pairs: Dict[Tuple[TokenId, TokenId], Pair] = {}

    # -- pairs ---------------------------------------------------------

    def create_pair(self, token_a: TokenId, token_b: TokenId, *, fee_bps: Optional[int] = None) -> Pair:
        key = sort_tokens(token_a, token_b)
        if key in self._pairs:
            raise ValueError(f"pair exists: {key}")
        pair = Pair(
            token0=key[0],
            token1=key[1],
            lp_token=lp_token_for(*key),
            fee_bps=self.default_fee_bps if fee_bps is None else fee_bps,
        )
        self._ledger.register_token(pair.lp_token)
        self._pairs[key] = pair
        return pair

    def get_pair(self, token_a: TokenId, token_b: TokenId) -> Pair:
        pair = self._pairs.get(sort_tokens(token_a, token_b))
        if pair is None:
            raise ValueError(f"no pair for {token_a}/{token_b}")
        return pair

    def get_reserves(self, token_a: TokenId, token_b: TokenId) -> Tuple[int, int]:
        """Reserves of (token_a, token_b) in the order asked for."""
        pair = self.get_pair(token_a, token_b)
        return (
            self._ledger.balance_of(token_a, pair.address),
            self._ledger.balance_of(token_b, pair.address),
        )

    # -- quotes --------------------------------------------------------

    def get_amounts_out(self, amount_in: int, path: Sequence[TokenId]) -> list[int]:
        if len(path) < 2:
            raise ValueError("path must contain at least two tokens")
        amounts = [amount_in]
        for token_in, token_out in zip(path, path[1:]):
            pair = self.get_pair(token_in, token_out)
            reserve_in, reserve_out = self.get_reserves(token_in, token_out)
            amounts.append(get_amount_out(amounts[-1], reserve_in, reserve_out, pair.fee_bps))
        return amounts

    # -- mutations -----------------------------------------------------

    def _ensure_live(self, deadline: int) -> None:
        now = self._clock()
        if now > deadline:
            raise ValueError(f"transaction expired: deadline {deadline} < now {now}")

    def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[TokenId],
        to: Account,
        deadline: int,
        *,
        sender: Account,
    ) -> list[int]:
        self._ensure_live(deadline)
        amounts = self.get_amounts_out(amount_in, path)
        if amounts[-1] < amount_out_min:
            raise SlippageExceededError(f"insufficient output amount: {amounts[-1]} < {amount_out_min}")

        first = self.get_pair(path[0], path[1])
        self._ledger.transfer_from(path[0], sender, first.address, amount_in, sender=self.address)
        hops = list(zip(path, path[1:]))
        for i, (token_in, token_out) in enumerate(hops):
            pair = self.get_pair(token_in, token_out)
            recipient = self.get_pair(*hops[i + 1]).address if i + 1 < len(hops) else to
            self._ledger.transfer(token_out, recipient, amounts[i + 1], sender=pair.address)

        logger.debug("Swap %s: in=%d out=%d to=%s", "->".join(path), amount_in, amounts[-1], to)
        return amounts

    def add_liquidity(
        self,
        token_a: TokenId,
        token_b: TokenId,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        to: Account,
        deadline: int,
        *,
        sender: Account,
    ) -> Tuple[int, int, int]:
        self._ensure_live(deadline)
        if sort_tokens(token_a, token_b) not in self._pairs:
            self.create_pair(token_a, token_b)
        pair = self.get_pair(token_a, token_b)

        reserve_a, reserve_b = self.get_reserves(token_a, token_b)
        amounts = optimal_amounts(
            reserve_a=reserve_a,
            reserve_b=reserve_b,
            amount_a_desired=amount_a_desired,
            amount_b_desired=amount_b_desired,
            amount_a_min=amount_a_min,
            amount_b_min=amount_b_min,
        )
        total_supply = self._ledger.total_supply(pair.lp_token)
        liquidity = liquidity_to_mint(
            amount_a=amounts.amount_a,
            amount_b=amounts.amount_b,
            reserve_a=reserve_a,
            reserve_b=reserve_b,
            total_supply=total_supply,
        )

        self._ledger.transfer_from(token_a, sender, pair.address, amounts.amount_a, sender=self.address)
        self._ledger.transfer_from(token_b, sender, pair.address, amounts.amount_b, sender=self.address)
        if total_supply == 0:
            self._ledger.mint(pair.lp_token, DEAD_ADDRESS, MINIMUM_LIQUIDITY)
        self._ledger.mint(pair.lp_token, to, liquidity)

        logger.debug(
            "Add liquidity %s: used=(%d, %d) liquidity=%d to=%s",
            pair.lp_token, amounts.amount_a, amounts.amount_b, liquidity, to,
        )
        return amounts.amount_a, amounts.amount_b, liquidity

    # -- unit of work --------------------------------------------------

    def snapshot(self) -> Dict[Tuple[TokenId, TokenId], Pair]:
        return dict(self._pairs)

    def restore(self, snap: Dict[Tuple[TokenId, TokenId], Pair]) -> None:
        self._pairs = dict(snap)

    def __repr__(self) -> str:
        return f"InMemoryExchange({len(self._pairs)} pairs)"
