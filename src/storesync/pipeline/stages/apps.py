"""Per-app release loop shared by the TestFlight and App Store stages."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from storesync.domain.errors import SUBMISSION_DISABLED, skip
from storesync.domain.publishing.session import PublishSession

if TYPE_CHECKING:
    from storesync.common.logging import IndentedLogger
    from storesync.domain.context import Context, Credentials
    from storesync.domain.project import App

type Release = Callable[[PublishSession, App], Awaitable[bool]]


async def _release_app(
    credentials: Credentials,
    ctx: Context,
    app: App,
    log: IndentedLogger,
    release: Release,
) -> bool:
    async with credentials.connect() as client:
        return await release(PublishSession(client=client, ctx=ctx, log=log), app)


def release_each_app(ctx: Context, log: IndentedLogger, release: Release) -> None:
    """Run ``release`` for every selected app, one event loop per app.

    Raises the "submission disabled" skip once every app has been updated when
    the run skips submission.
    """

    credentials = ctx.require_credentials()
    for name in ctx.apps_to_release:
        ctx.raise_if_interrupted()
        app = ctx.app(name)
        log.info("Releasing %s", name)
        asyncio.run(_release_app(credentials, ctx, app, log.nested(), release))
    if ctx.skip_submit:
        raise skip(SUBMISSION_DISABLED)
