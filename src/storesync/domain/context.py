"""Run context shared by release pipeline stages."""

from __future__ import annotations

import re
import threading
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .errors import InvalidVersionError, MissingAppError, RunInterruptedError
from .project import App, Project

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .ports.remote import RemoteClient


class PublishMode(StrEnum):
    TESTFLIGHT = "testflight"
    APPSTORE = "appstore"


_SEMVER_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


@dataclass(slots=True, frozen=True)
class Semver:
    major: int
    minor: int
    patch: int
    prerelease: str = ""
    raw: str = ""

    @classmethod
    def parse(cls, version: str) -> Semver:
        match = _SEMVER_RE.match(version.strip())
        if match is None:
            raise InvalidVersionError(version)
        return cls(
            major=int(match["major"]),
            minor=int(match["minor"]),
            patch=int(match["patch"]),
            prerelease=match["prerelease"] or "",
            raw=version,
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)


class Credentials(Protocol):
    """Supplies authenticated remote clients; the context never builds them itself."""

    def connect(self) -> AbstractAsyncContextManager[RemoteClient]: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class Context:
    """Ambient state for one release invocation.

    Stages write to the context only from the executor, between stages.
    Reconciliation workers read it and never write to it.
    """

    config: Project
    apps_to_release: list[str] = field(default_factory=list[str])
    publish_mode: PublishMode = PublishMode.TESTFLIGHT
    version: str = ""
    build: str | None = None
    semver: Semver | None = None
    credentials: Credentials | None = None
    env: Mapping[str, str] = field(default_factory=dict[str, str])
    current_directory: Path = field(default_factory=Path.cwd)
    max_processes: int = 1
    skip_update_metadata: bool = False
    skip_update_pricing: bool = False
    skip_submit: bool = False
    beta_group_overrides: list[str] = field(default_factory=list[str])
    beta_tester_overrides: list[str] = field(default_factory=list[str])
    version_is_initial_release: bool = False
    deadline: datetime | None = None
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def overrides_beta_groups(self) -> bool:
        return bool(self.beta_group_overrides)

    @property
    def overrides_beta_testers(self) -> bool:
        return bool(self.beta_tester_overrides)

    def app(self, name: str) -> App:
        try:
            return self.config.apps[name]
        except KeyError as exc:
            raise MissingAppError(name) from exc

    def resolve_path(self, path: str | Path) -> Path:
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return self.current_directory / candidate

    def set_timeout(self, timeout: timedelta, *, now: datetime | None = None) -> None:
        self.deadline = (now or _utcnow()) + timeout

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def raise_if_interrupted(self, *, now: datetime | None = None) -> None:
        if self._cancelled.is_set():
            raise RunInterruptedError("cancelled")
        if self.deadline is not None and (now or _utcnow()) >= self.deadline:
            raise RunInterruptedError("deadline exceeded")

    def require_credentials(self) -> Credentials:
        if self.credentials is None:
            raise RuntimeError("No credentials loaded; the env stage must run first")
        return self.credentials


__all__ = ["Context", "Credentials", "PublishMode", "Semver"]
