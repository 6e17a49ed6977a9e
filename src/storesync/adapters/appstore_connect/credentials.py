"""Credentials handing out authenticated App Store Connect clients."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from storesync.config import get_appstore_config

from .client import AppStoreConnectClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from storesync.config import AppStoreConnectConfig
    from storesync.domain.context import Credentials


@dataclass(frozen=True, slots=True)
class AppStoreConnectCredentials:
    config: AppStoreConnectConfig

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AppStoreConnectClient]:
        async with AppStoreConnectClient.from_config(self.config) as client:
            yield client


def credentials_from_env() -> AppStoreConnectCredentials:
    return AppStoreConnectCredentials(get_appstore_config())


if TYPE_CHECKING:
    _credentials_check: Credentials = AppStoreConnectCredentials(get_appstore_config())
