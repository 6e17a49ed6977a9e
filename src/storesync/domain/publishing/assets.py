"""Asset slots: screenshots, previews, review attachments and routing coverage.

An ``AssetSlot`` lists the remote assets of one parent once, indexes them by
file name and supplies the prepare/create/commit steps of ``upload_file`` for
that kind of asset.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Any

from storesync.domain.ports.remote import RemoteResource, UploadOperation
from storesync.domain.reconcile import Reconciler
from storesync.domain.upload import UploadOutcome, upload_file

from .session import PublishSession, attr_key, compact

if TYPE_CHECKING:
    from pathlib import Path

    from storesync.domain.parallel import TaskGroup
    from storesync.domain.ports.remote import Related
    from storesync.domain.project import File, Preview, PreviewType, ScreenshotDisplayType
    from storesync.domain.reconcile import Logger, ReconcilePlan

log = getLogger(__name__)


@dataclass(slots=True)
class AssetSlot:
    """Upload target for one kind of asset under one parent resource.

    ``singleton`` slots hold at most one asset; the existing one is compared
    with the local file regardless of its file name.
    """

    session: PublishSession
    type: str
    fetch: Callable[[], Awaitable[list[RemoteResource]]]
    parent: tuple[str, Related]
    singleton: bool = False
    _existing: dict[str, RemoteResource] = field(default_factory=dict[str, RemoteResource])

    @property
    def log(self) -> Logger:
        return self.session.log

    async def load(self) -> AssetSlot:
        for asset in await self.fetch():
            name = asset.attr("fileName")
            if name:
                self._existing[str(name)] = asset
        return self

    def _match(self, name: str) -> RemoteResource | None:
        if self.singleton:
            return next(iter(self._existing.values()), None)
        return self._existing.get(name)

    async def prepare(self, name: str, checksum: str) -> bool:
        existing = self._match(name)
        if existing is None:
            return True
        if existing.attr("sourceFileChecksum") == checksum:
            self.log.debug("Skipping existing %s %s (%s)", self.type, existing.id, checksum)
            return False
        self.log.debug("Deleting stale %s %s (%s)", self.type, name, existing.id)
        await self.session.client.delete(self.type, existing.id)
        return True

    async def create(
        self,
        name: str,
        size: int,
        *,
        attributes: Mapping[str, Any] | None = None,
    ) -> tuple[str, list[UploadOperation]]:
        self.log.debug("Reserving %s %s", self.type, name)
        relationship, related = self.parent
        reserved = await self.session.client.create(
            self.type,
            {"fileName": name, "fileSize": size, **compact(attributes or {})},
            {relationship: related},
        )
        operations = [
            UploadOperation.from_payload(operation)
            for operation in reserved.attr("uploadOperations") or ()
        ]
        return reserved.id, operations

    async def commit(
        self,
        remote_id: str,
        checksum: str,
        *,
        attributes: Mapping[str, Any] | None = None,
    ) -> None:
        self.log.debug("Committing %s %s", self.type, remote_id)
        await self.session.client.update(
            self.type,
            remote_id,
            {"uploaded": True, "sourceFileChecksum": checksum, **compact(attributes or {})},
        )

    async def upload(
        self,
        path: Path,
        *,
        create_attributes: Mapping[str, Any] | None = None,
        commit_attributes: Mapping[str, Any] | None = None,
    ) -> UploadOutcome:
        outcome = await upload_file(
            path,
            prepare=self.prepare,
            create=partial(self.create, attributes=create_attributes),
            commit=partial(self.commit, attributes=commit_attributes),
            transfer=self.session.client.upload,
        )
        self.log.info("%s %s: %s", self.type, path.name, outcome)
        return outcome

    async def submit_upload(
        self,
        group: TaskGroup,
        path: Path,
        *,
        create_attributes: Mapping[str, Any] | None = None,
        commit_attributes: Mapping[str, Any] | None = None,
    ) -> None:
        async def task() -> None:
            await self.upload(
                path,
                create_attributes=create_attributes,
                commit_attributes=commit_attributes,
            )

        await group.submit(task)


def _list_from(session: PublishSession, path: str) -> Callable[[], Awaitable[list[RemoteResource]]]:
    return partial(session.client.list, path)


async def schedule_screenshots(
    session: PublishSession,
    group: TaskGroup,
    screenshot_set_id: str,
    files: list[File],
) -> None:
    slot = await AssetSlot(
        session,
        "appScreenshots",
        _list_from(session, f"appScreenshotSets/{screenshot_set_id}/appScreenshots"),
        ("appScreenshotSet", ("appScreenshotSets", screenshot_set_id)),
    ).load()
    for file in files:
        await slot.submit_upload(group, session.ctx.resolve_path(file.path))


async def schedule_previews(
    session: PublishSession,
    group: TaskGroup,
    preview_set_id: str,
    previews: list[Preview],
) -> None:
    slot = await AssetSlot(
        session,
        "appPreviews",
        _list_from(session, f"appPreviewSets/{preview_set_id}/appPreviews"),
        ("appPreviewSet", ("appPreviewSets", preview_set_id)),
    ).load()
    for preview in previews:
        await slot.submit_upload(
            group,
            session.ctx.resolve_path(preview.path),
            create_attributes={"mimeType": preview.mime_type},
            commit_attributes={"previewFrameTimeCode": preview.preview_frame_time_code},
        )


async def schedule_screenshot_sets(
    session: PublishSession,
    group: TaskGroup,
    localization_id: str,
    sets: Mapping[ScreenshotDisplayType, list[File]],
) -> ReconcilePlan:
    """Reconcile screenshot sets of a version localization and queue their uploads."""

    client = session.client

    async def update(remote: RemoteResource, files: list[File]) -> None:
        await schedule_screenshots(session, group, remote.id, files)

    async def create(display_type: str, files: list[File]) -> None:
        created = await client.create(
            "appScreenshotSets",
            {"screenshotDisplayType": display_type},
            {"appStoreVersionLocalization": ("appStoreVersionLocalizations", localization_id)},
        )
        await schedule_screenshots(session, group, created.id, files)

    reconciler = Reconciler(
        kind="screenshot set",
        fetch=_list_from(
            session, f"appStoreVersionLocalizations/{localization_id}/appScreenshotSets"
        ),
        key=attr_key("screenshotDisplayType"),
        update=update,
        create=create,
        log=session.log,
    )
    declared = {display_type.api_value: files for display_type, files in sets.items()}
    return await reconciler.schedule(declared, group)


async def schedule_preview_sets(
    session: PublishSession,
    group: TaskGroup,
    localization_id: str,
    sets: Mapping[PreviewType, list[Preview]],
) -> ReconcilePlan:
    """Reconcile preview sets of a version localization and queue their uploads."""

    client = session.client

    async def update(remote: RemoteResource, previews: list[Preview]) -> None:
        await schedule_previews(session, group, remote.id, previews)

    async def create(preview_type: str, previews: list[Preview]) -> None:
        created = await client.create(
            "appPreviewSets",
            {"previewType": preview_type},
            {"appStoreVersionLocalization": ("appStoreVersionLocalizations", localization_id)},
        )
        await schedule_previews(session, group, created.id, previews)

    reconciler = Reconciler(
        kind="preview set",
        fetch=_list_from(session, f"appStoreVersionLocalizations/{localization_id}/appPreviewSets"),
        key=attr_key("previewType"),
        update=update,
        create=create,
        log=session.log,
    )
    declared = {preview_type.api_value: previews for preview_type, previews in sets.items()}
    return await reconciler.schedule(declared, group)


async def upload_review_attachments(
    session: PublishSession,
    review_detail_id: str,
    attachments: list[File],
) -> None:
    if not attachments:
        return
    group = session.group()
    slot = await AssetSlot(
        session,
        "appStoreReviewAttachments",
        _list_from(session, f"appStoreReviewDetails/{review_detail_id}/appStoreReviewAttachments"),
        ("appStoreReviewDetail", ("appStoreReviewDetails", review_detail_id)),
    ).load()
    for attachment in attachments:
        await slot.submit_upload(group, session.ctx.resolve_path(attachment.path))
    await group.wait()


async def upload_routing_coverage(
    session: PublishSession,
    version_id: str,
    coverage: File,
) -> UploadOutcome:
    slot = await AssetSlot(
        session,
        "routingAppCoverages",
        partial(session.fetch_one, f"appStoreVersions/{version_id}/routingAppCoverage"),
        ("appStoreVersion", ("appStoreVersions", version_id)),
        singleton=True,
    ).load()
    return await slot.upload(session.ctx.resolve_path(coverage.path))


__all__ = [
    "AssetSlot",
    "schedule_preview_sets",
    "schedule_previews",
    "schedule_screenshot_sets",
    "schedule_screenshots",
    "upload_review_attachments",
    "upload_routing_coverage",
]
