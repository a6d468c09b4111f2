"""
Join primitives for concurrent pattern work.

Two deliberately separate disciplines:

- ``gather_settled`` waits for every awaitable and keeps the successes
  (parallel fan-out).
- ``gather_fail_fast`` aborts the batch on the first failure, cancelling
  whatever is still pending (orchestrator-workers).
"""

import asyncio
import logging
from typing import Awaitable, List, Sequence, Tuple, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def gather_settled(
    awaitables: Sequence[Awaitable[T]],
) -> Tuple[List[T], List[BaseException]]:
    """Wait for all awaitables to settle.

    Returns:
        (fulfilled results in submission order, failures in submission order)
    """
    outcomes = await asyncio.gather(*awaitables, return_exceptions=True)

    fulfilled: List[T] = []
    failures: List[BaseException] = []
    for index, outcome in enumerate(outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            logger.warning(f"Concurrent task {index} failed: {outcome}")
            failures.append(outcome)
        else:
            fulfilled.append(outcome)
    return fulfilled, failures


async def gather_fail_fast(awaitables: Sequence[Awaitable[T]]) -> List[T]:
    """Wait for all awaitables, aborting on the first failure.

    Pending tasks are cancelled before the first error is re-raised.

    Returns:
        Results in submission order
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        return []

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    failed = [task for task in tasks if task in done and not task.cancelled() and task.exception()]
    if failed:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        raise failed[0].exception()

    return [task.result() for task in tasks]


__all__ = ["gather_settled", "gather_fail_fast"]
