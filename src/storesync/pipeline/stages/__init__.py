"""Release pipeline stages in execution order."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .defaults import DefaultsStage
from .env import EnvStage
from .publish import PublishStage
from .semver import SemverStage
from .store import AppStoreStage
from .testflight import TestflightStage

if TYPE_CHECKING:
    from storesync.pipeline.executor import Stage

__all__ = [
    "AppStoreStage",
    "DefaultsStage",
    "EnvStage",
    "PublishStage",
    "SemverStage",
    "TestflightStage",
    "default_stages",
]


def default_stages() -> list[Stage]:
    return [EnvStage(), SemverStage(), DefaultsStage(), PublishStage()]
