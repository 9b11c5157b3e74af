"""Divvy quarterly trip comparison: member vs casual riders."""

from divvy_segments.errors import (
    DataLoadError,
    PipelineError,
    ReportError,
    SchemaMismatchError,
    UnknownSegmentLabelError,
)
from divvy_segments.pipeline import PipelineConfig, PipelineResult, run_pipeline

__version__ = "0.1.0"

__all__ = [
    "DataLoadError",
    "PipelineConfig",
    "PipelineError",
    "PipelineResult",
    "ReportError",
    "SchemaMismatchError",
    "UnknownSegmentLabelError",
    "run_pipeline",
]
