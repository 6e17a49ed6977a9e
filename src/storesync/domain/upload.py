"""Checksum-gated asset upload protocol.

An upload goes through ``prepare`` then ``create``, the transfer of each
upload operation, and finally ``commit``. ``prepare`` decides whether the
remote copy is already current; when it is, nothing is transferred.
"""

from __future__ import annotations

import hashlib
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from pathlib import Path
from typing import BinaryIO

from .errors import UploadError
from .ports.remote import UploadOperation

log = getLogger(__name__)

type Prepare = Callable[[str, str], Awaitable[bool]]
type Create = Callable[[str, int], Awaitable[tuple[str, Sequence[UploadOperation]]]]
type Commit = Callable[[str, str], Awaitable[None]]
type Transfer = Callable[[Sequence[UploadOperation], BinaryIO], Awaitable[None]]


class UploadOutcome(StrEnum):
    SKIPPED = "skipped"
    UPLOADED = "uploaded"


@dataclass(slots=True, frozen=True)
class LocalAsset:
    path: Path
    name: str
    size: int
    checksum: str


def read_asset(path: Path | str) -> LocalAsset:
    """Stat a file and stream it through MD5 without keeping its contents."""

    asset_path = Path(path)
    with asset_path.open("rb") as stream:
        digest = hashlib.file_digest(stream, lambda: hashlib.md5(usedforsecurity=False))
    return LocalAsset(
        path=asset_path,
        name=asset_path.name,
        size=asset_path.stat().st_size,
        checksum=digest.hexdigest(),
    )


async def upload_file(
    path: Path | str,
    *,
    prepare: Prepare,
    create: Create,
    commit: Commit,
    transfer: Transfer,
) -> UploadOutcome:
    """Upload ``path`` unless ``prepare`` reports the remote copy is current."""

    try:
        asset = read_asset(path)
        if not await prepare(asset.name, asset.checksum):
            log.debug("Skipping unchanged asset %s (%s)", asset.name, asset.checksum)
            return UploadOutcome.SKIPPED
        remote_id, operations = await create(asset.name, asset.size)
        with asset.path.open("rb") as stream:
            await transfer(operations, stream)
        await commit(remote_id, asset.checksum)
    except Exception as exc:
        raise UploadError(path) from exc
    log.debug("Uploaded %s as %s", asset.name, remote_id)
    return UploadOutcome.UPLOADED


__all__ = [
    "Commit",
    "Create",
    "LocalAsset",
    "Prepare",
    "Transfer",
    "UploadOutcome",
    "read_asset",
    "upload_file",
]
