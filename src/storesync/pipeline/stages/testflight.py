from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from storesync.domain.publishing.testflight import release_to_testflight

from .apps import release_each_app

if TYPE_CHECKING:
    from storesync.common.logging import IndentedLogger
    from storesync.domain.context import Context


@dataclass(slots=True)
class TestflightStage:
    """Publish the selected apps' builds to TestFlight."""

    __test__ = False

    name: str = "committing to testflight"

    def run(self, ctx: Context, log: IndentedLogger) -> None:
        release_each_app(ctx, log, release_to_testflight)
