"""Error types raised across the release pipeline."""

from __future__ import annotations

from pathlib import Path


class SkipError(Exception):
    """Signal that a stage intentionally did nothing.

    The executor logs a skip as a warning and carries on with the next stage;
    it never fails a run.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


NO_APPS_TO_PUBLISH = "no apps selected to publish"
SUBMISSION_DISABLED = "submission disabled"


def skip(reason: str) -> SkipError:
    return SkipError(reason)


def is_skip(exc: BaseException | None) -> bool:
    return isinstance(exc, SkipError)


class MissingAppError(LookupError):
    """Raised when a selected app name is not declared in the project."""

    def __init__(self, name: str) -> None:
        super().__init__(f"App {name!r} is not declared in the project")
        self.name = name


class UnsupportedPublishModeError(ValueError):
    def __init__(self, mode: str) -> None:
        super().__init__(f"Unsupported publish mode: {mode}")
        self.mode = mode


class InvalidVersionError(ValueError):
    def __init__(self, version: str) -> None:
        super().__init__(f"Invalid semantic version: {version!r}")
        self.version = version


class ReconcileError(RuntimeError):
    """Raised when fetching, updating or creating an entity fails."""

    def __init__(self, kind: str, key: str | None = None) -> None:
        target = kind if key is None else f"{kind} {key!r}"
        super().__init__(f"Failed to reconcile {target}")
        self.kind = kind
        self.key = key


class UploadError(RuntimeError):
    def __init__(self, path: Path | str) -> None:
        super().__init__(f"Failed to upload {path}")
        self.path = Path(path)


class StageError(RuntimeError):
    def __init__(self, stage: str) -> None:
        super().__init__(f"Stage {stage!r} failed")
        self.stage = stage


class AppNotFoundError(LookupError):
    def __init__(self, bundle_id: str) -> None:
        super().__init__(f"No app found with bundle id {bundle_id!r}")
        self.bundle_id = bundle_id


class AppInfoNotFoundError(LookupError):
    def __init__(self, app_id: str) -> None:
        super().__init__(f"No editable app info found for app {app_id}")
        self.app_id = app_id


class BuildNotFoundError(LookupError):
    def __init__(self, version: str, build: str | None = None) -> None:
        detail = version if build is None else f"{version} ({build})"
        super().__init__(f"No build found for version {detail}")
        self.version = version
        self.build = build


class BuildProcessingError(RuntimeError):
    """Raised when a build has not finished processing or failed processing."""

    def __init__(self, build_id: str, state: str | None) -> None:
        super().__init__(f"Build {build_id} is not valid (processing state: {state})")
        self.build_id = build_id
        self.state = state


class RunInterruptedError(RuntimeError):
    """Raised at a checkpoint once the run was cancelled or ran past its deadline."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Release interrupted: {reason}")
        self.reason = reason
