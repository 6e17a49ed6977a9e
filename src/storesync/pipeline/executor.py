"""Stage pipeline executor.

Stages run strictly in order against one ``Context``. A stage that raises
``SkipError`` is logged and treated as done; any other exception aborts the
pipeline as a ``StageError`` and later stages never run. Nothing already
applied remotely is rolled back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from storesync.domain.errors import SkipError, StageError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from storesync.common.logging import IndentedLogger
    from storesync.domain.context import Context


class Stage(Protocol):
    """Contract implemented by each pipeline stage."""

    name: str

    def run(self, ctx: Context, log: IndentedLogger) -> None: ...


def run_stage(ctx: Context, stage: Stage, log: IndentedLogger) -> bool:
    """Run one stage one level below ``log``; return ``False`` when it skipped."""

    log.info(stage.name)
    try:
        stage.run(ctx, log.nested())
    except SkipError as exc:
        log.nested().warning("stage skipped: %s", exc.reason)
        return False
    except Exception as exc:
        raise StageError(stage.name) from exc
    return True


def run_pipeline(ctx: Context, stages: Iterable[Stage], log: IndentedLogger) -> None:
    """Execute ``stages`` in order, checking for interruption before each one."""

    for stage in stages:
        ctx.raise_if_interrupted()
        run_stage(ctx, stage, log)
