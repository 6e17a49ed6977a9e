from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storesync.common.logging import IndentedLogger
    from storesync.domain.context import Context, Credentials


def _credentials_from_env() -> Credentials:
    from storesync.adapters.appstore_connect import credentials_from_env  # noqa: PLC0415

    return credentials_from_env()


@dataclass(slots=True)
class EnvStage:
    """Load App Store Connect credentials unless the context already has some."""

    name: str = "loading environment variables"
    credentials_factory: Callable[[], Credentials] = field(default=_credentials_from_env)

    def run(self, ctx: Context, log: IndentedLogger) -> None:
        if ctx.credentials is not None:
            log.debug("Using preconfigured credentials")
            return
        ctx.credentials = self.credentials_factory()
        log.info("Loaded App Store Connect credentials")
