"""Bounded task groups used to fan out remote calls.

Two variants share the ``TaskGroup`` protocol:

* ``SerialGroup`` runs each task inline when it is submitted. After the first
  failure later submissions are recorded as skipped and never run.
* ``BoundedGroup`` schedules every task on the running loop, gated by a
  semaphore. All submitted tasks run to completion even after a failure.

In both cases ``wait`` raises the first error observed; later errors are
dropped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from logging import getLogger
from typing import Protocol

type Task = Callable[[], Awaitable[None]]

log = getLogger(__name__)


class TaskGroup(Protocol):
    async def submit(self, task: Task) -> None: ...

    async def wait(self) -> None: ...


class SerialGroup:
    """Runs tasks one at a time in submission order and stops at the first error."""

    def __init__(self) -> None:
        self._error: Exception | None = None
        self.executed = 0
        self.skipped = 0

    async def submit(self, task: Task) -> None:
        if self._error is not None:
            self.skipped += 1
            log.debug("Skipping task after earlier failure: %r", self._error)
            return
        self.executed += 1
        try:
            await task()
        except Exception as exc:  # noqa: BLE001
            self._error = exc

    async def wait(self) -> None:
        if self._error is not None:
            raise self._error


class BoundedGroup:
    """Runs at most ``max_concurrency`` tasks at once; never cancels."""

    def __init__(self, max_concurrency: int) -> None:
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._pending: list[asyncio.Task[None]] = []
        self._error: Exception | None = None

    async def submit(self, task: Task) -> None:
        self._pending.append(asyncio.create_task(self._run(task)))

    async def _run(self, task: Task) -> None:
        async with self._semaphore:
            try:
                await task()
            except Exception as exc:  # noqa: BLE001
                if self._error is None:
                    self._error = exc
                else:
                    log.debug("Dropping additional task error: %r", exc)

    async def wait(self) -> None:
        # tasks may submit further tasks while running
        while self._pending:
            pending, self._pending = self._pending, []
            await asyncio.gather(*pending)
        if self._error is not None:
            raise self._error


def new_group(max_concurrency: int) -> TaskGroup:
    """Return a serial group for ``max_concurrency <= 1``, a bounded group otherwise."""

    if max_concurrency <= 1:
        return SerialGroup()
    return BoundedGroup(max_concurrency)


__all__ = ["BoundedGroup", "SerialGroup", "Task", "TaskGroup", "new_group"]
