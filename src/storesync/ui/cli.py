from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import timedelta
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from storesync.app import ReleaseRequest, build_context, release
from storesync.common.logging import configure_logging
from storesync.config import ConfigurationError
from storesync.domain.context import PublishMode

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from storesync.domain.context import Context

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Publish a declared store listing to App Store Connect"
    )
    parser.add_argument(
        "-f",
        "--config",
        type=str,
        help="Path to the project file (defaults to storesync.yml in the working directory)",
    )
    parser.add_argument(
        "-a",
        "--app",
        dest="apps",
        action="append",
        default=[],
        help="Name of an app to release; repeat for several",
    )
    parser.add_argument(
        "-A",
        "--all-apps",
        action="store_true",
        help="Release every app declared in the project",
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in PublishMode],
        help="Publish to TestFlight or the App Store (default: testflight)",
    )
    parser.add_argument(
        "-p",
        "--max-processes",
        type=int,
        help="Maximum number of concurrent API operations (default: 1)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Abort the release after this many minutes (default: 30)",
    )
    parser.add_argument(
        "-V",
        "--set-version",
        dest="version",
        type=str,
        required=True,
        help="Semantic version being released",
    )
    parser.add_argument(
        "-B",
        "--set-build",
        dest="build",
        type=str,
        help="Build number to release (defaults to the latest build of the version)",
    )
    parser.add_argument(
        "--set-beta-group",
        dest="beta_groups",
        action="append",
        default=[],
        help="Release only to this existing beta group; repeat for several",
    )
    parser.add_argument(
        "--set-beta-tester",
        dest="beta_testers",
        action="append",
        default=[],
        help="Release only to this beta tester email; repeat for several",
    )
    parser.add_argument(
        "--skip-update-metadata",
        action="store_true",
        help="Do not update listing metadata",
    )
    parser.add_argument(
        "--skip-update-pricing",
        action="store_true",
        help="Do not update territories and prices",
    )
    parser.add_argument(
        "--skip-submit",
        action="store_true",
        help="Update everything but do not submit for review",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log debug output",
    )
    return parser.parse_args(list(argv))


def _request_from_args(args: argparse.Namespace) -> ReleaseRequest:
    if args.max_processes is not None and args.max_processes < 1:
        raise ValueError("--max-processes must be at least 1")
    timeout: timedelta | None = None
    if args.timeout is not None:
        if args.timeout <= 0:
            raise ValueError("--timeout must be positive")
        timeout = timedelta(minutes=args.timeout)
    return ReleaseRequest(
        version=args.version,
        project_file=args.config,
        apps=list(args.apps),
        all_apps=args.all_apps,
        mode=args.mode,
        build=args.build,
        max_processes=args.max_processes,
        timeout=timeout,
        skip_update_metadata=args.skip_update_metadata,
        skip_update_pricing=args.skip_update_pricing,
        skip_submit=args.skip_submit,
        beta_groups=list(args.beta_groups),
        beta_testers=list(args.beta_testers),
    )


def _cancel_handler(ctx: Context) -> Callable[[int, FrameType | None], None]:
    def handler(signal_received: int, _frame: FrameType | None) -> None:
        log.warning("Received signal %s; stopping after the current stage", signal_received)
        ctx.cancel()

    return handler


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.debug else logging.INFO)
        ctx = build_context(_request_from_args(parsed_args), env=dict(os.environ))
    except (ValueError, ConfigurationError):
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    handler = _cancel_handler(ctx)
    signal(SIGINT, handler)
    signal(SIGTERM, handler)

    try:
        release(ctx)
    except Exception:
        log.exception("Release failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
