"""Release run defaults."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

DEFAULT_MAX_PROCESSES = 1
DEFAULT_TIMEOUT = timedelta(minutes=30)
DEFAULT_PUBLISH_MODE = "testflight"
DEFAULT_PROJECT_FILES = ("storesync.yml", "storesync.yaml", ".storesync.yml", ".storesync.yaml")


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    max_processes: int = DEFAULT_MAX_PROCESSES
    timeout: timedelta = DEFAULT_TIMEOUT
    publish_mode: str = DEFAULT_PUBLISH_MODE


def get_release_config() -> ReleaseConfig:
    return ReleaseConfig()
