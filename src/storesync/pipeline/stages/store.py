from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from storesync.domain.publishing.store import release_to_app_store

from .apps import release_each_app

if TYPE_CHECKING:
    from storesync.common.logging import IndentedLogger
    from storesync.domain.context import Context


@dataclass(slots=True)
class AppStoreStage:
    """Prepare and submit the selected apps' App Store versions."""

    name: str = "committing to app store"

    def run(self, ctx: Context, log: IndentedLogger) -> None:
        release_each_app(ctx, log, release_to_app_store)
