"""Lookups of the app, its build and its App Store state."""

from __future__ import annotations

from typing import TYPE_CHECKING

from storesync.domain.errors import (
    AppInfoNotFoundError,
    AppNotFoundError,
    BuildNotFoundError,
    BuildProcessingError,
)

if TYPE_CHECKING:
    from storesync.domain.ports.remote import RemoteClient, RemoteResource

VALID_PROCESSING_STATE = "VALID"
PREPARE_FOR_SUBMISSION = "PREPARE_FOR_SUBMISSION"


async def find_app(client: RemoteClient, bundle_id: str) -> RemoteResource:
    apps = await client.list("apps", {"filter[bundleId]": bundle_id})
    if not apps:
        raise AppNotFoundError(bundle_id)
    return apps[0]


async def find_build(
    client: RemoteClient,
    app_id: str,
    version: str,
    build: str | None = None,
) -> RemoteResource:
    """Return the build uploaded for ``version`` (and ``build`` number when given).

    A build that has not reached the ``VALID`` processing state aborts the
    release rather than publishing something that may still be rejected.
    """

    params = {"filter[app]": app_id, "filter[preReleaseVersion.version]": version}
    if build:
        params["filter[version]"] = build
    builds = await client.list("builds", params)
    if not builds:
        raise BuildNotFoundError(version, build)
    found = builds[0]
    state = found.attr("processingState")
    if state != VALID_PROCESSING_STATE:
        raise BuildProcessingError(found.id, state)
    return found


async def find_editable_app_info(client: RemoteClient, app_id: str) -> RemoteResource:
    """Return the app info currently open for edits."""

    for info in await client.list(f"apps/{app_id}/appInfos"):
        if info.attr("appStoreState") == PREPARE_FOR_SUBMISSION:
            return info
    raise AppInfoNotFoundError(app_id)


async def release_is_initial(client: RemoteClient, app_id: str) -> bool:
    """An app has never been released when it has at most one App Store version."""

    versions = await client.list(f"apps/{app_id}/appStoreVersions")
    return len(versions) <= 1
