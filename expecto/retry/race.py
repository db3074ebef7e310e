"""
First-completed race between awaitables.

race() runs its contenders as tasks, waits until one of them finishes or
the timeout fires, then cancels and awaits every other task so nothing
keeps running in the background.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable


@dataclass
class RaceResult:
    """
    Outcome of a race.

    Attributes:
        index: Position of the winning contender, None on timeout
        task: The winning task (done), None on timeout
    """
    index: int | None
    task: asyncio.Future | None

    @property
    def timed_out(self) -> bool:
        return self.index is None


async def race(*contenders: Awaitable[Any], timeout: float | None = None) -> RaceResult:
    """
    Wait for the first contender to complete.

    When several contenders are done at the same time the one passed
    first wins.

    If the calling task is cancelled, every contender is cancelled and
    awaited before CancelledError propagates.
    """
    tasks = [asyncio.ensure_future(c) for c in contenders]

    if timeout is not None:
        timeout = max(timeout, 0)

    try:
        done, _ = await asyncio.wait(
            tasks,
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
    except BaseException:
        await _cancel_and_wait(tasks)
        raise

    winner = next((i for i, task in enumerate(tasks) if task in done), None)
    await _cancel_and_wait([t for i, t in enumerate(tasks) if i != winner])

    return RaceResult(
        index=winner,
        task=tasks[winner] if winner is not None else None,
    )


async def _cancel_and_wait(tasks: list[asyncio.Future]) -> None:
    for task in tasks:
        if not task.done():
            task.cancel()
    if tasks:
        # Losers' results and errors are discarded
        await asyncio.gather(*tasks, return_exceptions=True)
