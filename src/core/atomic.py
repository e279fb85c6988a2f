"""
All-or-nothing units of work.

Every public vault operation runs inside `atomic(...)`. Participants that can
`snapshot()` and `restore()` are captured before the body runs and rolled back
(in reverse order) if it raises. There are no partial states to reconcile: an
operation either commits as a whole or leaves every participant unchanged.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class Snapshottable(Protocol):
    def snapshot(self) -> Any: ...

    def restore(self, snap: Any) -> None: ...


@contextmanager
def atomic(*participants: object) -> Iterator[None]:
    """Run the body as a single unit of work over the given participants.

    Participants that do not implement `Snapshottable` are skipped; their
    atomicity is the host's responsibility.
    """
    captured = []
    seen: set[int] = set()
    for p in participants:
        if id(p) in seen or not isinstance(p, Snapshottable):
            continue
        seen.add(id(p))
        captured.append((p, p.snapshot()))

    try:
        yield
    except BaseException as exc:
        for p, snap in reversed(captured):
            p.restore(snap)
        logger.warning("Rolled back unit of work over %d participants: %s", len(captured), exc)
        raise


class ReentrancyGuard:
    """Boolean "operation in progress" flag, checked and set on entry."""

    def __init__(self) -> None:
        self._entered = False

    @property
    def entered(self) -> bool:
        return self._entered

    @contextmanager
    def enter(self, error: type[Exception], operation: str) -> Iterator[None]:
        if self._entered:
            raise error(f"reentrant call to {operation}")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False
