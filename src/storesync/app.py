"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from storesync.common.logging import IndentedLogger
from storesync.config import find_project_file, get_release_config, load_project
from storesync.domain.context import Context, PublishMode
from storesync.pipeline import run_pipeline
from storesync.pipeline.stages import default_stages

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from storesync.domain.context import Credentials
    from storesync.pipeline import Stage

log = getLogger(__name__)


@dataclass(slots=True)
class ReleaseRequest:
    """What a caller asked to release; ``None`` values fall back to ``ReleaseConfig``."""

    version: str
    project_file: Path | str | None = None
    apps: list[str] = field(default_factory=list[str])
    all_apps: bool = False
    mode: PublishMode | str | None = None
    build: str | None = None
    max_processes: int | None = None
    timeout: timedelta | None = None
    skip_update_metadata: bool = False
    skip_update_pricing: bool = False
    skip_submit: bool = False
    beta_groups: list[str] = field(default_factory=list[str])
    beta_testers: list[str] = field(default_factory=list[str])


def build_context(
    request: ReleaseRequest,
    *,
    credentials: Credentials | None = None,
    env: Mapping[str, str] | None = None,
) -> Context:
    """Load the project file and assemble the run context for ``request``."""

    defaults = get_release_config()
    project_path = Path(request.project_file or find_project_file())
    project = load_project(project_path).with_beta_overrides(
        groups=request.beta_groups, testers=request.beta_testers
    )

    selected = project.apps_matching(request.apps, include_all=request.all_apps)
    unknown = sorted(set(request.apps) - set(project.apps))
    if unknown:
        log.warning("Ignoring apps not declared in %s: %s", project_path, ", ".join(unknown))

    max_processes = (
        defaults.max_processes if request.max_processes is None else request.max_processes
    )
    if max_processes < 1:
        raise ValueError("max processes must be at least 1")
    timeout = defaults.timeout if request.timeout is None else request.timeout
    if timeout <= timedelta(0):
        raise ValueError("timeout must be positive")

    ctx = Context(
        config=project,
        apps_to_release=selected,
        publish_mode=PublishMode(request.mode or defaults.publish_mode),
        version=request.version,
        build=request.build,
        credentials=credentials,
        env=dict(env or {}),
        current_directory=project_path.resolve().parent,
        max_processes=max_processes,
        skip_update_metadata=request.skip_update_metadata,
        skip_update_pricing=request.skip_update_pricing,
        skip_submit=request.skip_submit,
        beta_group_overrides=list(request.beta_groups),
        beta_tester_overrides=list(request.beta_testers),
    )
    ctx.set_timeout(timeout)
    return ctx


def release(ctx: Context, *, stages: Iterable[Stage] | None = None) -> Context:
    """Run the release pipeline against ``ctx``."""

    log.info(
        "Starting release: version=%s, mode=%s, apps=%s, max_processes=%s",
        ctx.version,
        ctx.publish_mode,
        ctx.apps_to_release,
        ctx.max_processes,
    )
    run_pipeline(
        ctx,
        default_stages() if stages is None else stages,
        IndentedLogger.for_name("storesync.release"),
    )
    log.info("Finished release of version %s", ctx.version)
    return ctx
