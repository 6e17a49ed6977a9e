from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from storesync.domain.project import App, Platform, ReleaseType

if TYPE_CHECKING:
    from storesync.common.logging import IndentedLogger
    from storesync.domain.context import Context

DEFAULT_PLATFORM = Platform.IOS
DEFAULT_RELEASE_TYPE = ReleaseType.AFTER_APPROVAL


def with_version_defaults(app: App) -> App:
    update: dict[str, object] = {}
    if app.versions.platform is None:
        update["platform"] = DEFAULT_PLATFORM
    if app.versions.release_type is None:
        update["release_type"] = DEFAULT_RELEASE_TYPE
    if not update:
        return app
    return app.model_copy(update={"versions": app.versions.model_copy(update=update)})


@dataclass(slots=True)
class DefaultsStage:
    """Fill in configuration defaults the project file left out."""

    name: str = "setting defaults"

    def run(self, ctx: Context, log: IndentedLogger) -> None:
        apps = {name: with_version_defaults(app) for name, app in ctx.config.apps.items()}
        ctx.config = ctx.config.model_copy(update={"apps": apps})
        log.debug("Applied defaults to %d apps", len(apps))
