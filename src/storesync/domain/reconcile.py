"""Generic create/update reconciliation of keyed collections.

A ``Reconciler`` diffs a declared collection against the remote collection for
one entity kind. Remote entities whose key is declared are updated with the
full declared value, declared keys that are missing remotely are created, and
everything else on the remote side is left alone. Nothing is ever deleted.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import ReconcileError
from .parallel import TaskGroup, new_group

log = logging.getLogger(__name__)

type Logger = logging.Logger | logging.LoggerAdapter[Any]


@dataclass(slots=True)
class ReconcilePlan:
    """Keys touched (or deliberately left alone) by one reconcile pass.

    ``updated`` and ``created`` list applied work only: a key is added once its
    callback has returned, so the lists are complete after the task group has
    drained. Keys whose callback raised go to ``failed``; keys a failed serial
    group never ran appear in none of them.
    """

    kind: str
    updated: list[str] = field(default_factory=list[str])
    created: list[str] = field(default_factory=list[str])
    failed: list[str] = field(default_factory=list[str])
    ignored: list[str] = field(default_factory=list[str])
    skipped: int = 0

    @property
    def is_noop(self) -> bool:
        return not self.updated and not self.created


def _declared_items[D](declared: Mapping[str, D] | Iterable[tuple[str, D]]) -> list[tuple[str, D]]:
    if isinstance(declared, Mapping):
        return list(declared.items())
    return list(declared)


@dataclass(slots=True, frozen=True)
class Reconciler[R, D]:
    """Diff-and-apply for one entity kind.

    ``fetch`` returns the full remote collection for the current scope.
    ``key`` extracts the natural key of a remote entity (``None`` when the
    remote entity has none). ``update`` receives the matched remote entity and
    its declared value; ``create`` receives the declared key and value.
    """

    kind: str
    fetch: Callable[[], Awaitable[list[R]]]
    key: Callable[[R], str | None]
    update: Callable[[R, D], Awaitable[None]]
    create: Callable[[str, D], Awaitable[None]]
    log: Logger = log

    async def schedule(
        self,
        declared: Mapping[str, D] | Iterable[tuple[str, D]],
        group: TaskGroup,
    ) -> ReconcilePlan:
        """Fetch once and submit every update and create to ``group``.

        Errors raised by the callbacks surface from ``group.wait()`` as
        ``ReconcileError``. A failing fetch raises immediately. The returned
        plan fills in as tasks finish.
        """

        plan = ReconcilePlan(self.kind)
        wanted: dict[str, D] = {}
        for key, value in _declared_items(declared):
            if not key:
                self.log.warning("Skipping %s with an empty key", self.kind)
                plan.skipped += 1
                continue
            wanted[key] = value

        try:
            remote = await self.fetch()
        except Exception as exc:
            raise ReconcileError(self.kind) from exc

        found: set[str] = set()
        for entity in remote:
            key = self.key(entity)
            if not key:
                continue
            if key not in wanted:
                plan.ignored.append(key)
                continue
            if key in found:
                continue
            found.add(key)
            self.log.debug("Updating %s %s", self.kind, key)
            task = self._guarded(plan.updated, plan.failed, key, self.update, entity, wanted[key])
            await group.submit(task)

        for key, value in wanted.items():
            if key in found:
                continue
            self.log.debug("Creating %s %s", self.kind, key)
            task = self._guarded(plan.created, plan.failed, key, self.create, key, value)
            await group.submit(task)

        return plan

    async def run(
        self,
        declared: Mapping[str, D] | Iterable[tuple[str, D]],
        concurrency: int = 1,
    ) -> ReconcilePlan:
        """Reconcile with a private task group and wait for it to drain."""

        group = new_group(concurrency)
        plan = await self.schedule(declared, group)
        await group.wait()
        return plan

    def _guarded[A, B](
        self,
        applied: list[str],
        failed: list[str],
        key: str,
        call: Callable[[A, B], Awaitable[None]],
        first: A,
        second: B,
    ) -> Callable[[], Awaitable[None]]:
        kind = self.kind

        async def task() -> None:
            try:
                await call(first, second)
            except Exception as exc:
                failed.append(key)
                raise ReconcileError(kind, key) from exc
            applied.append(key)

        return task


SINGLETON = "default"


def singleton_key[R](_entity: R) -> str:
    """Key for kinds that have at most one remote instance per scope."""

    return SINGLETON


__all__ = ["SINGLETON", "ReconcilePlan", "Reconciler", "singleton_key"]
