"""Project file loading."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from storesync.domain.project import Project

from .errors import ProjectFileError
from .release import DEFAULT_PROJECT_FILES


def find_project_file(directory: Path | str = ".") -> Path:
    """Return the first default project file found in ``directory``."""

    base = Path(directory)
    for name in DEFAULT_PROJECT_FILES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    names = ", ".join(DEFAULT_PROJECT_FILES)
    raise ProjectFileError(f"No project file found in {base} (looked for {names})")


def load_project(path: Path | str) -> Project:
    """Load and validate a declared project file."""

    project_path = Path(path)
    if not project_path.is_file():
        raise ProjectFileError(f"Project file not found: {project_path}")

    try:
        parsed = yaml.safe_load(project_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ProjectFileError(f"Failed to read project file {project_path}: {exc}") from exc

    if parsed is None:
        parsed = {}
    if not isinstance(parsed, Mapping):
        raise ProjectFileError("Project file root must be a mapping.")

    try:
        return Project.model_validate(parsed)
    except ValidationError as exc:
        raise ProjectFileError(f"Invalid project file {project_path}:\n{exc}") from exc
