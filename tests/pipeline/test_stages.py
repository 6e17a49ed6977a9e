from __future__ import annotations

from typing import Any

import pytest

from storesync.common.logging import IndentedLogger
from storesync.domain.context import PublishMode
from storesync.domain.errors import InvalidVersionError, UnsupportedPublishModeError
from storesync.domain.project import Platform, ReleaseType
from storesync.pipeline import run_pipeline
from storesync.pipeline.stages import (
    AppStoreStage,
    DefaultsStage,
    EnvStage,
    PublishStage,
    SemverStage,
    TestflightStage,
    default_stages,
)
from storesync.pipeline.stages.publish import publisher_for
from tests.helpers.remote import (
    FakeCredentials,
    FakeRemoteClient,
    make_context,
    make_project,
    resource,
)


def _log() -> IndentedLogger:
    return IndentedLogger.for_name("tests.stages")


def _testflight_client() -> FakeRemoteClient:
    return FakeRemoteClient(
        collections={
            "apps": [
                resource("apps", "app-1", bundleId="com.example.one"),
                resource("apps", "app-2", bundleId="com.example.two"),
            ],
            "builds": [resource("builds", "build-1", version="7", processingState="VALID")],
        }
    )


def _two_apps() -> Any:
    return make_project({"one": {"id": "com.example.one"}, "two": {"id": "com.example.two"}})


def test_default_stage_order() -> None:
    assert [type(stage) for stage in default_stages()] == [
        EnvStage,
        SemverStage,
        DefaultsStage,
        PublishStage,
    ]


def test_env_stage_loads_credentials_once() -> None:
    loaded = FakeCredentials(FakeRemoteClient())
    calls: list[int] = []

    def factory() -> FakeCredentials:
        calls.append(1)
        return loaded

    ctx = make_context()
    stage = EnvStage(credentials_factory=factory)
    stage.run(ctx, _log())
    stage.run(ctx, _log())

    assert ctx.credentials is loaded
    assert calls == [1]


def test_semver_stage_parses_version() -> None:
    ctx = make_context(version="2.0.0-rc.1")

    SemverStage().run(ctx, _log())

    assert ctx.semver is not None
    assert ctx.semver.major == 2
    assert ctx.semver.prerelease == "rc.1"


def test_semver_stage_rejects_missing_version() -> None:
    ctx = make_context(version="")

    with pytest.raises(InvalidVersionError):
        SemverStage().run(ctx, _log())


def test_defaults_stage_fills_platform_and_release_type() -> None:
    project = make_project(
        {
            "one": {"id": "com.example.one"},
            "two": {"id": "com.example.two", "versions": {"platform": "macOS"}},
        }
    )
    ctx = make_context(project)

    DefaultsStage().run(ctx, _log())

    assert ctx.config.apps["one"].versions.platform is Platform.IOS
    assert ctx.config.apps["one"].versions.release_type is ReleaseType.AFTER_APPROVAL
    assert ctx.config.apps["two"].versions.platform is Platform.MACOS


def test_publisher_for_mode() -> None:
    assert isinstance(publisher_for(PublishMode.TESTFLIGHT), TestflightStage)
    assert isinstance(publisher_for("appstore"), AppStoreStage)
    with pytest.raises(UnsupportedPublishModeError):
        publisher_for("playstore")


def test_publish_stage_skips_without_apps() -> None:
    client = FakeRemoteClient()
    ctx = make_context(apps=[], credentials=FakeCredentials(client))

    run_pipeline(ctx, [PublishStage()], _log())

    assert client.fetches == []


def test_testflight_stage_releases_every_selected_app() -> None:
    client = _testflight_client()
    credentials = FakeCredentials(client)
    ctx = make_context(_two_apps(), credentials=credentials)

    run_pipeline(ctx, [PublishStage()], _log())

    assert credentials.connections == 2
    assert len(client.made("create", "betaAppReviewSubmissions")) == 2


def test_skip_submit_updates_every_app_then_skips() -> None:
    client = _testflight_client()
    ctx = make_context(_two_apps(), credentials=FakeCredentials(client), skip_submit=True)

    # the skip is reported, not raised
    run_pipeline(ctx, [PublishStage()], _log())

    looked_up = [params["filter[bundleId]"] for path, params in client.fetches if path == "apps"]
    assert looked_up == ["com.example.one", "com.example.two"]
    assert client.made("create", "betaAppReviewSubmissions") == []


def test_full_pipeline_with_preloaded_credentials() -> None:
    client = _testflight_client()
    project = make_project({"one": {"id": "com.example.one"}})
    ctx = make_context(project, version="1.0.0", credentials=FakeCredentials(client))

    run_pipeline(ctx, default_stages(), _log())

    assert ctx.semver is not None
    assert len(client.made("create", "betaAppReviewSubmissions")) == 1
