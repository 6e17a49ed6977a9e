"""Shared logging helpers for storesync."""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: INFO by
    default and a terse format suitable for CLI output. Pass ``force=True`` to
    reconfigure during tests or when ``--debug`` is requested.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


class IndentedLogger(logging.LoggerAdapter[logging.Logger]):
    """Logger adapter that indents messages by an explicit nesting depth.

    Stages receive one of these from the executor; ``nested()`` returns a new
    adapter one level deeper so nested publishers read as a tree in CLI output.
    """

    def __init__(self, logger: logging.Logger, depth: int = 0) -> None:
        super().__init__(logger, {"depth": depth})
        self.depth = depth

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        return f"{'  ' * self.depth}{msg}", kwargs

    def nested(self) -> IndentedLogger:
        return IndentedLogger(self.logger, self.depth + 1)

    @classmethod
    def for_name(cls, name: str, depth: int = 0) -> IndentedLogger:
        return cls(logging.getLogger(name), depth)
