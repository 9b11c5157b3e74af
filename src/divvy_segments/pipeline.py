"""
pipeline.py

Compare member and casual riders across two quarterly Divvy exports.

Stages:
  1. load     - read the legacy and current trip files
  2. unify    - rename legacy columns, cast ids to text
  3. combine  - stack both quarters, drop non-shared columns
  4. clean    - map rider labels, derive calendar fields/ride_length, drop bad rows
  5. analyse  - overall + per-segment statistics, segment x weekday summary
  6. report   - summary CSV, two bar charts, highlights markdown

Outputs written to --out-dir:
  - summary_data.csv
  - rides_by_weekday.png
  - average_duration_by_weekday.png
  - summary_highlights.md (unless --no-highlights)
  - cleaned trips parquet (only with --cleaned-parquet)

Any PipelineError stops the run; main() logs the failing stage and returns 1.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Sequence

import matplotlib
import pandas as pd

from divvy_segments.analysis import describe_by_segment, describe_durations, summarize_by_segment_weekday
from divvy_segments.cleaning import MAINTENANCE_STATION, UNKNOWN_LABEL_POLICIES, CleaningReport, clean_trips, combine_trips
from divvy_segments.errors import PipelineError, ReportError
from divvy_segments.loading import read_trips
from divvy_segments.logging_utils import logger
from divvy_segments.reporting import (
    build_highlights_markdown,
    export_summary,
    plot_average_duration_by_weekday,
    plot_rides_by_weekday,
    print_lines,
    write_lines,
)
from divvy_segments.schema import check_current_schema, unify_legacy_schema

DEFAULT_LEGACY_CSV = "Divvy_Trips_2019_Q1.csv"
DEFAULT_CURRENT_CSV = "Divvy_Trips_2020_Q1.csv"
DEFAULT_SUMMARY_NAME = "summary_data.csv"


@dataclass
class PipelineConfig:
    legacy_path: Path
    current_path: Path
    out_dir: Path = Path("outputs")
    summary_name: str = DEFAULT_SUMMARY_NAME
    maintenance_station: str = MAINTENANCE_STATION
    unknown_labels: str = "error"
    zero_fill: bool = False
    charts: bool = True
    highlights: bool = True
    print_highlights: bool = False
    cleaned_parquet: Optional[Path] = None

    def __post_init__(self) -> None:
        self.legacy_path = Path(self.legacy_path)
        self.current_path = Path(self.current_path)
        self.out_dir = Path(self.out_dir)
        if self.cleaned_parquet is not None:
            self.cleaned_parquet = Path(self.cleaned_parquet)
        if self.unknown_labels not in UNKNOWN_LABEL_POLICIES:
            raise ValueError(f"unknown_labels must be one of {UNKNOWN_LABEL_POLICIES}, got {self.unknown_labels!r}")

    @property
    def summary_path(self) -> Path:
        return self.out_dir / self.summary_name


@dataclass
class PipelineResult:
    trips: pd.DataFrame
    report: CleaningReport
    overall: pd.Series
    by_segment: pd.DataFrame
    summary: pd.DataFrame
    outputs: Dict[str, Path] = field(default_factory=dict)


def run_pipeline(config: PipelineConfig) -> PipelineResult:
    logger.info(f"Loading legacy={config.legacy_path} current={config.current_path}")
    legacy = read_trips(config.legacy_path)
    current = read_trips(config.current_path)

    legacy = unify_legacy_schema(legacy)
    current = check_current_schema(current)
    combined = combine_trips(legacy, current)
    del legacy, current

    trips, report = clean_trips(
        combined,
        on_unknown=config.unknown_labels,
        maintenance_station=config.maintenance_station,
    )
    del combined

    overall = describe_durations(trips)
    by_segment = describe_by_segment(trips)
    summary = summarize_by_segment_weekday(trips, zero_fill=config.zero_fill)

    result = PipelineResult(trips=trips, report=report, overall=overall, by_segment=by_segment, summary=summary)
    try:
        write_outputs(config, result)
    except OSError as e:
        raise ReportError(f"Could not write outputs to {config.out_dir}: {e}") from e
    return result


def write_outputs(config: PipelineConfig, result: PipelineResult) -> None:
    trips, summary = result.trips, result.summary
    out_dir = config.out_dir
    out_dir.mkdir(parents=True, exist_ok=True)

    result.outputs["summary"] = export_summary(summary, config.summary_path)

    if config.charts:
        if summary.empty:
            logger.warning("Summary is empty; skipping charts")
        else:
            result.outputs["rides_chart"] = plot_rides_by_weekday(summary, out_dir / "rides_by_weekday.png")
            result.outputs["duration_chart"] = plot_average_duration_by_weekday(
                summary, out_dir / "average_duration_by_weekday.png"
            )

    if config.print_highlights:
        print_lines(build_highlights_markdown(result.overall, result.by_segment, summary, result.report, plain=True))
    if config.highlights:
        lines = build_highlights_markdown(result.overall, result.by_segment, summary, result.report)
        result.outputs["highlights"] = write_lines(out_dir / "summary_highlights.md", lines)

    if config.cleaned_parquet is not None:
        config.cleaned_parquet.parent.mkdir(parents=True, exist_ok=True)
        trips.to_parquet(config.cleaned_parquet, index=False)
        logger.info(f"Saved -> {config.cleaned_parquet} rows={len(trips):,}")
        result.outputs["cleaned_parquet"] = config.cleaned_parquet


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Compare Divvy member vs casual ride lengths across two quarterly trip exports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("--legacy-csv", default=DEFAULT_LEGACY_CSV, help="Older-format trips (trip_id/usertype...), .csv or .zip")
    ap.add_argument("--current-csv", default=DEFAULT_CURRENT_CSV, help="Newer-format trips (ride_id/member_casual...), .csv or .zip")
    ap.add_argument("--out-dir", default="outputs", help="Where to write the summary CSV, charts and highlights")
    ap.add_argument("--summary-name", default=DEFAULT_SUMMARY_NAME, help="File name of the summary CSV inside --out-dir")
    ap.add_argument(
        "--unknown-labels",
        choices=list(UNKNOWN_LABEL_POLICIES),
        default="error",
        help="Rider labels other than Subscriber/Customer/member/casual: "
             "'error' stops the run (default), 'warn' keeps them, 'drop' removes those rides.",
    )
    ap.add_argument("--maintenance-station", default=MAINTENANCE_STATION, help="Start station name of service trips to exclude")
    ap.add_argument("--zero-fill", action="store_true", help="Emit every segment/weekday pair, with 0 rides where none were seen")
    ap.add_argument("--no-charts", action="store_true", help="Do not render the bar charts")
    ap.add_argument("--no-highlights", action="store_true", help="Do not write summary_highlights.md")
    ap.add_argument("--no-print", action="store_true", help="Do not print highlights to the terminal")
    ap.add_argument("--cleaned-parquet", default=None, help="Optional path to write the cleaned trip table as parquet")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if not args.no_charts:
        # charts are written to files only
        matplotlib.use("Agg")

    config = PipelineConfig(
        legacy_path=Path(args.legacy_csv),
        current_path=Path(args.current_csv),
        out_dir=Path(args.out_dir),
        summary_name=args.summary_name,
        maintenance_station=args.maintenance_station,
        unknown_labels=args.unknown_labels,
        zero_fill=args.zero_fill,
        charts=not args.no_charts,
        highlights=not args.no_highlights,
        print_highlights=not args.no_print,
        cleaned_parquet=Path(args.cleaned_parquet) if args.cleaned_parquet else None,
    )

    try:
        result = run_pipeline(config)
    except PipelineError as e:
        logger.error(f"stage={e.stage} failed: {e}")
        return 1

    logger.info(f"Done: {result.report.rows_out:,} rides, {len(result.summary)} segment/weekday rows")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
