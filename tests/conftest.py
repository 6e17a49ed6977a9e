from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

ASC_ENV_VARS = ("ASC_KEY_ID", "ASC_ISSUER_ID", "ASC_PRIVATE_KEY", "ASC_PRIVATE_KEY_PATH")


@pytest.fixture(autouse=True)
def _clear_asc_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ASC_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def asset_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "assets"
    directory.mkdir()
    (directory / "shot-1.png").write_bytes(b"first screenshot")
    (directory / "shot-2.png").write_bytes(b"second screenshot")
    (directory / "preview.mp4").write_bytes(b"preview movie")
    (directory / "coverage.geojson").write_bytes(b'{"type": "FeatureCollection"}')
    (directory / "notes.pdf").write_bytes(b"%PDF review notes")
    return directory


@pytest.fixture
def ec_private_key() -> str:
    from cryptography.hazmat.primitives import serialization  # noqa: PLC0415
    from cryptography.hazmat.primitives.asymmetric import ec  # noqa: PLC0415

    key = ec.generate_private_key(ec.SECP256R1())
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
