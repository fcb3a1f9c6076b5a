"""
Async concurrency primitives used by the diff cache and report aggregation.

- ``SingleFlight`` shares one computation per key between all callers.
- ``gather_ordered`` runs a batch under a concurrency cap and fails fast.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Hashable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterable

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


class ConcurrencyLimit:
    """``asyncio.Semaphore`` that also records how many holders it has seen at once."""

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError(f"concurrency limit must be >= 1, got {limit}")
        self.limit = limit
        self.active = 0
        self.peak = 0
        self._semaphore = asyncio.Semaphore(limit)

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._semaphore:
            self.active += 1
            self.peak = max(self.peak, self.active)
            try:
                yield
            finally:
                self.active -= 1


class SingleFlight(Generic[K, T]):
    """
    De-duplicate concurrent work by key.

    The first caller for a key starts the computation; every other caller,
    concurrent or later, awaits the same task and observes the same result
    or the same exception. Waiters that are cancelled do not cancel the
    shared computation.
    """

    def __init__(self) -> None:
        self._tasks: dict[K, asyncio.Task[T]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    async def run(self, key: K, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
        return await asyncio.shield(task)

    async def abandon(self) -> None:
        """Cancel computations that have not finished yet."""

        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


async def gather_ordered(
    coroutines: Iterable[Awaitable[T]],
    *,
    limit: ConcurrencyLimit | int,
) -> list[T]:
    """
    Run ``coroutines`` at most ``limit`` at a time; results keep input order.

    Passing a ``ConcurrencyLimit`` lets several batches share one cap and
    lets the caller read how many ran at once.

    On the first failure every unfinished coroutine is cancelled, coroutines
    that never started are closed, and the exception of the earliest failed
    input is raised.
    """

    gate = limit if isinstance(limit, ConcurrencyLimit) else ConcurrencyLimit(limit)
    failed = False

    async def guarded(coroutine: Awaitable[T]) -> T:
        started = False
        try:
            async with gate.slot():
                if failed:
                    raise asyncio.CancelledError
                started = True
                return await coroutine
        finally:
            if not started:
                _discard(coroutine)

    tasks = [asyncio.ensure_future(guarded(coroutine)) for coroutine in coroutines]
    if not tasks:
        return []

    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        await _cancel(tasks)
        raise

    errors = [task.exception() for task in tasks if task.done() and not task.cancelled()]
    first_error = next((error for error in errors if error is not None), None)
    if first_error is not None:
        failed = True
        await _cancel(tasks)
        raise first_error
    return [task.result() for task in tasks]


async def _cancel(tasks: Iterable[asyncio.Future[T]]) -> None:
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)


def _discard(awaitable: Awaitable[object]) -> None:
    # A coroutine that will never be awaited must be closed explicitly.
    if inspect.iscoroutine(awaitable):
        awaitable.close()


__all__ = [
    "ConcurrencyLimit",
    "SingleFlight",
    "gather_ordered",
]
