"""Sequential release pipeline: ordered stages over a shared run context."""

from __future__ import annotations

from .executor import Stage, run_pipeline, run_stage

__all__ = ["Stage", "run_pipeline", "run_stage"]
