"""
Fan-out/join coordination for stages that run many independent tasks.

All tasks of a stage are launched at once; a wait group counts them down as
each one reports completion and the stage resumes only when the count reaches
zero. Decrements happen on the event loop thread, so the counter needs no
lock.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from ..types import FanOutError

logger = logging.getLogger(__name__)


class WaitGroup:
    """Barrier that resolves once ``done()`` has been called ``count`` times."""

    def __init__(self, count: int):
        if count < 0:
            raise ValueError("WaitGroup count must be non-negative")
        self._remaining = count
        self._resolved = asyncio.Event()
        if count == 0:
            self._resolved.set()

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def resolved(self) -> bool:
        return self._resolved.is_set()

    def done(self) -> None:
        """Record one task completion."""
        if self._remaining == 0:
            raise RuntimeError("WaitGroup.done() called more times than there are tasks")
        self._remaining -= 1
        if self._remaining == 0:
            self._resolved.set()

    async def wait(self) -> None:
        await self._resolved.wait()


@dataclass(frozen=True)
class FanOutTask:
    """A labelled unit of work launched by join_all."""
    label: str
    run: Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class TaskFailure:
    label: str
    error: Exception


@dataclass(frozen=True)
class JoinOutcome:
    """Aggregate result of a fan-out. Failures are listed in the order they occurred."""
    description: str
    total: int
    failures: tuple[TaskFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def first_failure(self) -> Optional[TaskFailure]:
        return self.failures[0] if self.failures else None

    def raise_for_failures(self) -> None:
        """Raise FanOutError carrying the first failure if any task failed."""
        first = self.first_failure
        if first is not None:
            raise FanOutError(self.description, len(self.failures), self.total, first.error)


async def join_all(tasks: Sequence[FanOutTask], description: str) -> JoinOutcome:
    """
    Launch every task concurrently and wait until all of them have completed.

    A failing task is logged and recorded but does not cut the join short:
    the join resolves only after every task has reported, successfully or not.

    Args:
        tasks: Tasks to launch
        description: Label for log messages and errors

    Returns:
        JoinOutcome listing any task failures
    """
    wait_group = WaitGroup(len(tasks))
    failures: list[TaskFailure] = []

    async def _report(task: FanOutTask) -> None:
        try:
            await task.run()
        except Exception as e:
            logger.error(f"{description}: {task.label} failed: {e}")
            failures.append(TaskFailure(task.label, e))
        finally:
            wait_group.done()

    logger.debug(f"{description}: launching {len(tasks)} tasks")
    launched = [asyncio.create_task(_report(task), name=f"{description}:{task.label}") for task in tasks]

    await wait_group.wait()
    # Every task has already passed done(); gathering only reaps them
    await asyncio.gather(*launched)

    if failures:
        logger.error(f"{description}: {len(failures)} of {len(tasks)} tasks failed")
    else:
        logger.debug(f"{description}: all {len(tasks)} tasks completed")

    return JoinOutcome(description=description, total=len(tasks), failures=tuple(failures))
