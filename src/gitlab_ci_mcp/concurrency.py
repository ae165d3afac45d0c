"""Fan-out helpers that capture per-item failures instead of raising.

``gather_settled`` runs every item at once; ``map_sequential`` runs them one
after another. Both return one ``Settled`` per input item, in input order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Settled(Generic[T, R]):
    item: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _settle(item: T, func: Callable[[T], Awaitable[R]]) -> Settled[T, R]:
    try:
        return Settled(item, value=await func(item))
    except Exception as e:
        return Settled(item, error=e)


async def gather_settled(
    items: Iterable[T], func: Callable[[T], Awaitable[R]]
) -> list[Settled[T, R]]:
    """Apply *func* to all items concurrently, without a concurrency cap."""
    return list(await asyncio.gather(*(_settle(item, func) for item in items)))


async def map_sequential(
    items: Iterable[T], func: Callable[[T], Awaitable[R]]
) -> list[Settled[T, R]]:
    """Apply *func* to one item at a time; a failure does not stop the rest."""
    return [await _settle(item, func) for item in items]
