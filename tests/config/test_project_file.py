from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from storesync.config import ProjectFileError, find_project_file, load_project

if TYPE_CHECKING:
    from pathlib import Path

PROJECT_YAML = """\
name: Example
apps:
  example:
    id: com.example.app
    primaryLocale: en-US
    localizations:
      en-US:
        name: Example
        subtitle: An example app
    versions:
      platform: iOS
      localizations:
        en-US:
          description: The example app.
          whatsNew: Bug fixes.
          screenshotSets:
            iphone65:
              - path: assets/shot-1.png
    testflight:
      enableAutoNotify: true
      betaGroups:
        - group: QA
          testers:
            - email: qa@example.com
              firstName: Quinn
"""


def test_load_project(tmp_path: Path) -> None:
    path = tmp_path / "storesync.yml"
    path.write_text(PROJECT_YAML, encoding="utf-8")

    project = load_project(path)

    app = project.apps["example"]
    assert project.name == "Example"
    assert app.localizations["en-US"].subtitle == "An example app"
    assert app.versions.localizations["en-US"].whats_new == "Bug fixes."
    assert app.testflight.enable_auto_notify
    assert app.testflight.beta_groups[0].testers[0].first_name == "Quinn"


def test_find_project_file(tmp_path: Path) -> None:
    (tmp_path / ".storesync.yaml").write_text("apps: {}\n", encoding="utf-8")

    assert find_project_file(tmp_path).name == ".storesync.yaml"

    (tmp_path / "storesync.yml").write_text("apps: {}\n", encoding="utf-8")
    assert find_project_file(tmp_path).name == "storesync.yml"


def test_find_project_file_reports_missing(tmp_path: Path) -> None:
    with pytest.raises(ProjectFileError, match="No project file found"):
        find_project_file(tmp_path)


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("- just\n- a list\n", "must be a mapping"),
        ("apps: [unclosed\n", "Failed to read"),
        ("apps:\n  example:\n    id: com.example.app\n    colour: blue\n", "Invalid project"),
    ],
)
def test_load_project_rejects_bad_files(tmp_path: Path, content: str, message: str) -> None:
    path = tmp_path / "storesync.yml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ProjectFileError, match=message):
        load_project(path)


def test_empty_project_file_has_no_apps(tmp_path: Path) -> None:
    path = tmp_path / "storesync.yml"
    path.write_text("", encoding="utf-8")

    assert load_project(path).apps == {}
