"""
Vault event records and the append-only event log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Tuple, Type, TypeVar, Union


@dataclass(frozen=True)
class Deposit:
    caller: str
    owner: str
    assets: int
    shares: int


@dataclass(frozen=True)
class Withdraw:
    caller: str
    receiver: str
    owner: str
    assets: int
    shares: int


@dataclass(frozen=True)
class Reinvest:
    new_total_deposits: int


@dataclass(frozen=True)
class Recovered:
    token: str
    amount: int


@dataclass(frozen=True)
class EmergencyWithdraw:
    amount: int


VaultEvent = Union[Deposit, Withdraw, Reinvest, Recovered, EmergencyWithdraw]
E = TypeVar("E")


class EventLog:
    """
    Append-only, ordered log of committed events.

    Participates in atomic units of work, so events emitted by an operation
    that later fails are discarded together with its state changes.
    """

    def __init__(self) -> None:
        self._events: List[VaultEvent] = []

    def emit(self, event: VaultEvent) -> None:
        self._events.append(event)

    def of_type(self, kind: Type[E]) -> List[E]:
        return [e for e in self._events if isinstance(e, kind)]

    def last(self) -> VaultEvent | None:
        return self._events[-1] if self._events else None

    def snapshot(self) -> Tuple[VaultEvent, ...]:
        return tuple(self._events)

    def restore(self, snap: Tuple[VaultEvent, ...]) -> None:
        self._events = list(snap)

    def __iter__(self) -> Iterator[VaultEvent]:
        return iter(tuple(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"EventLog({len(self._events)} events)"
