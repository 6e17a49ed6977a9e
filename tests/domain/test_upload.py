from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, BinaryIO

import pytest

from storesync.domain.errors import UploadError
from storesync.domain.ports.remote import UploadOperation
from storesync.domain.upload import LocalAsset, UploadOutcome, read_asset, upload_file

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


@dataclass(slots=True)
class RemoteAssets:
    """One remote slot holding checksums by file name."""

    checksums: dict[str, str] = field(default_factory=dict[str, str])
    deleted: list[str] = field(default_factory=list[str])
    reserved: list[tuple[str, int]] = field(default_factory=list[tuple[str, int]])
    sent: list[bytes] = field(default_factory=list[bytes])
    sources: list[BinaryIO] = field(default_factory=list[BinaryIO])
    committed: list[tuple[str, str]] = field(default_factory=list[tuple[str, str]])
    fail_transfer: bool = False

    async def prepare(self, name: str, checksum: str) -> bool:
        current = self.checksums.get(name)
        if current == checksum:
            return False
        if current is not None:
            self.deleted.append(name)
            del self.checksums[name]
        return True

    async def create(self, name: str, size: int) -> tuple[str, list[UploadOperation]]:
        self.reserved.append((name, size))
        half = size // 2
        return name, [
            UploadOperation("PUT", "https://upload.example/1", 0, half),
            UploadOperation("PUT", "https://upload.example/2", half, size - half),
        ]

    async def transfer(self, operations: Sequence[UploadOperation], source: BinaryIO) -> None:
        if self.fail_transfer:
            raise ConnectionError("upload refused")
        self.sources.append(source)
        # parts may arrive in any order; each one reads its own range
        self.sent.extend(operation.chunk(source) for operation in reversed(operations))

    async def commit(self, remote_id: str, checksum: str) -> None:
        self.committed.append((remote_id, checksum))
        self.checksums[remote_id] = checksum

    def upload(self, path: Path) -> UploadOutcome:
        return asyncio.run(
            upload_file(
                path,
                prepare=self.prepare,
                create=self.create,
                commit=self.commit,
                transfer=self.transfer,
            )
        )


def test_read_asset_computes_md5(tmp_path: Path) -> None:
    path = tmp_path / "icon.png"
    path.write_bytes(b"pixels")

    asset = read_asset(path)

    assert asset.name == "icon.png"
    assert asset.size == 6
    assert asset.checksum == hashlib.md5(b"pixels").hexdigest()  # noqa: S324


def test_new_file_is_reserved_transferred_and_committed(tmp_path: Path) -> None:
    path = tmp_path / "shot.png"
    path.write_bytes(b"0123456789")
    remote = RemoteAssets()

    outcome = remote.upload(path)

    assert outcome is UploadOutcome.UPLOADED
    assert remote.reserved == [("shot.png", 10)]
    assert remote.sent == [b"56789", b"01234"]
    assert remote.committed == [("shot.png", hashlib.md5(b"0123456789").hexdigest())]  # noqa: S324


def test_unchanged_file_is_not_uploaded_again(tmp_path: Path) -> None:
    path = tmp_path / "shot.png"
    path.write_bytes(b"same bytes")
    remote = RemoteAssets()

    first = remote.upload(path)
    second = remote.upload(path)

    assert first is UploadOutcome.UPLOADED
    assert second is UploadOutcome.SKIPPED
    assert len(remote.reserved) == 1
    assert len(remote.committed) == 1
    assert remote.deleted == []


def test_changed_file_replaces_the_remote_copy(tmp_path: Path) -> None:
    path = tmp_path / "shot.png"
    path.write_bytes(b"version one")
    remote = RemoteAssets()
    remote.upload(path)

    path.write_bytes(b"version two")
    outcome = remote.upload(path)

    assert outcome is UploadOutcome.UPLOADED
    assert remote.deleted == ["shot.png"]
    assert len(remote.reserved) == 2
    assert remote.checksums["shot.png"] == hashlib.md5(b"version two").hexdigest()  # noqa: S324


def test_missing_file_raises_upload_error(tmp_path: Path) -> None:
    remote = RemoteAssets()

    with pytest.raises(UploadError) as excinfo:
        remote.upload(tmp_path / "missing.png")

    assert excinfo.value.path.name == "missing.png"
    assert remote.reserved == []


def test_failed_transfer_is_not_committed(tmp_path: Path) -> None:
    path = tmp_path / "shot.png"
    path.write_bytes(b"bytes")
    remote = RemoteAssets(fail_transfer=True)

    with pytest.raises(UploadError) as excinfo:
        remote.upload(path)

    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert remote.committed == []


def test_large_file_is_hashed_and_sent_from_disk(tmp_path: Path) -> None:
    content = bytes(range(256)) * 4096 * 3
    path = tmp_path / "preview.mp4"
    path.write_bytes(content)
    remote = RemoteAssets()

    asset = read_asset(path)
    outcome = remote.upload(path)

    assert {item.name for item in fields(LocalAsset)} == {"path", "name", "size", "checksum"}
    assert asset.size == len(content)
    assert asset.checksum == hashlib.md5(content).hexdigest()  # noqa: S324
    assert outcome is UploadOutcome.UPLOADED
    assert b"".join(reversed(remote.sent)) == content
    (source,) = remote.sources
    assert source.closed


def test_unchanged_file_is_never_opened_for_transfer(tmp_path: Path) -> None:
    path = tmp_path / "shot.png"
    path.write_bytes(b"same bytes")
    checksum = hashlib.md5(b"same bytes").hexdigest()  # noqa: S324
    remote = RemoteAssets(checksums={"shot.png": checksum})

    assert remote.upload(path) is UploadOutcome.SKIPPED
    assert remote.sources == []
