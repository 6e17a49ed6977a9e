from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from storesync.domain.context import PublishMode
from storesync.domain.errors import NO_APPS_TO_PUBLISH, UnsupportedPublishModeError, skip
from storesync.pipeline.executor import Stage, run_stage

from .store import AppStoreStage
from .testflight import TestflightStage

if TYPE_CHECKING:
    from storesync.common.logging import IndentedLogger
    from storesync.domain.context import Context


def publisher_for(mode: PublishMode | str) -> Stage:
    match mode:
        case PublishMode.TESTFLIGHT:
            return TestflightStage()
        case PublishMode.APPSTORE:
            return AppStoreStage()
        case _:
            raise UnsupportedPublishModeError(str(mode))


@dataclass(slots=True)
class PublishStage:
    """Dispatch to the TestFlight or App Store publisher for the run's mode."""

    name: str = "publishing from app store connect"

    def run(self, ctx: Context, log: IndentedLogger) -> None:
        if not ctx.apps_to_release:
            raise skip(NO_APPS_TO_PUBLISH)
        run_stage(ctx, publisher_for(ctx.publish_mode), log)
