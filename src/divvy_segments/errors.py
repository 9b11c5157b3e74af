"""Exceptions raised by the pipeline stages.

Every fatal error carries the name of the stage that failed so the CLI can
report it before exiting with a non-zero status.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for fatal pipeline errors."""

    stage = "pipeline"

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class DataLoadError(PipelineError):
    """Input file is missing or could not be parsed."""

    stage = "load"


class SchemaMismatchError(PipelineError):
    """The two trip tables cannot be stacked without silent coercion."""

    stage = "unify"


class UnknownSegmentLabelError(PipelineError):
    """A rider label outside the known legacy/canonical set was found."""

    stage = "clean"

    def __init__(self, counts: dict[str, int]) -> None:
        self.counts = dict(counts)
        shown = ", ".join(f"{label!r}={n:,}" for label, n in sorted(self.counts.items()))
        super().__init__(f"Unrecognized member_casual labels: {shown}")


class ReportError(PipelineError):
    """An output file or directory could not be written."""

    stage = "report"
