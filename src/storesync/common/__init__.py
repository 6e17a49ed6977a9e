from __future__ import annotations

from .logging import IndentedLogger, configure_logging

__all__ = [
    "IndentedLogger",
    "configure_logging",
]
