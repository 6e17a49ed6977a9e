from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from storesync.domain.context import Semver
from storesync.domain.errors import InvalidVersionError

if TYPE_CHECKING:
    from storesync.common.logging import IndentedLogger
    from storesync.domain.context import Context


@dataclass(slots=True)
class SemverStage:
    """Parse the release version into its semantic version parts."""

    name: str = "parsing version"

    def run(self, ctx: Context, log: IndentedLogger) -> None:
        if not ctx.version:
            raise InvalidVersionError(ctx.version)
        ctx.semver = Semver.parse(ctx.version)
        log.info("Releasing version %s", ctx.semver.raw)
        if ctx.semver.is_prerelease:
            log.warning("Version %s is a prerelease", ctx.semver.raw)
