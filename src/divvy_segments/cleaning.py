"""
cleaning.py

Stack the unified quarters and prepare them for analysis:

- drop coordinate, demographic and precomputed-duration columns
- map legacy rider labels (Subscriber/Customer) to member/casual
- add date, month, day, year, day_of_week and ride_length (seconds)
- remove rides with non-positive duration and HQ QR maintenance trips

Dropped rows are counted in a CleaningReport and logged, never raised.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Tuple

import pandas as pd

from divvy_segments.errors import UnknownSegmentLabelError
from divvy_segments.loading import ensure_datetime_series
from divvy_segments.logging_utils import logger
from divvy_segments.schema import CANONICAL_COLUMNS, assert_alignable

DROP_COLUMNS = ["start_lat", "start_lng", "end_lat", "end_lng", "birthyear", "gender", "tripduration"]

SEGMENT_LABELS: Dict[str, str] = {
    "Subscriber": "member",
    "Customer": "casual",
    "member": "member",
    "casual": "casual",
}
SEGMENTS = ["casual", "member"]

WEEKDAY_ORDER = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
WEEKDAY_DTYPE = pd.CategoricalDtype(categories=WEEKDAY_ORDER, ordered=True)

MAINTENANCE_STATION = "HQ QR"

UNKNOWN_LABEL_POLICIES = ("error", "warn", "drop")


@dataclass
class CleaningReport:
    rows_in: int = 0
    unknown_labels: int = 0
    unknown_labels_dropped: int = 0
    bad_duration: int = 0
    maintenance: int = 0
    rows_out: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


# -----------------------------
# Combine
# -----------------------------
def combine_trips(legacy: pd.DataFrame, current: pd.DataFrame) -> pd.DataFrame:
    """
    Row-wise union of the two unified tables.

    Canonical columns must have matching dtype families (SchemaMismatchError
    otherwise). After the fixed drop list, anything only one source carried
    is dropped with a warning.
    """
    assert_alignable(legacy, current)

    shared = set(legacy.columns) & set(current.columns)
    df = pd.concat([legacy, current], ignore_index=True, sort=False)
    df = df.drop(columns=DROP_COLUMNS, errors="ignore")
    # an all-null side can leave object dtype after concat
    for col in ("started_at", "ended_at"):
        df[col] = ensure_datetime_series(df[col])

    extra = [c for c in df.columns if c not in shared]
    if extra:
        logger.warning(f"Dropping source-specific columns not present in both quarters: {extra}")
        df = df.drop(columns=extra)

    ordered = [c for c in CANONICAL_COLUMNS if c in df.columns]
    ordered += [c for c in df.columns if c not in ordered]
    df = df[ordered]

    logger.info(f"Combined trips rows={len(df):,} (legacy={len(legacy):,}, current={len(current):,})")
    return df


# -----------------------------
# Labels
# -----------------------------
def normalize_segment_labels(df: pd.DataFrame, on_unknown: str = "error") -> Tuple[pd.DataFrame, int, int]:
    """
    Replace legacy rider labels with member/casual.

    on_unknown:
      error -> raise UnknownSegmentLabelError
      warn  -> log counts, keep rows with the label unchanged
      drop  -> log counts, remove those rows

    Returns (df, unknown_rows, dropped_rows).
    """
    if on_unknown not in UNKNOWN_LABEL_POLICIES:
        raise ValueError(f"on_unknown must be one of {UNKNOWN_LABEL_POLICIES}, got {on_unknown!r}")

    df = df.copy()
    raw = df["member_casual"]
    mapped = raw.map(SEGMENT_LABELS)
    unknown = mapped.isna()
    n_unknown = int(unknown.sum())

    if n_unknown == 0:
        df["member_casual"] = mapped
        return df, 0, 0

    counts = raw[unknown].fillna("<missing>").astype(str).value_counts().to_dict()
    if on_unknown == "error":
        raise UnknownSegmentLabelError(counts)

    logger.warning(f"Unrecognized member_casual labels ({n_unknown:,} rows): {counts}")
    df["member_casual"] = mapped.where(~unknown, raw)
    if on_unknown == "drop":
        df = df[~unknown].copy()
        logger.warning(f"Dropped {n_unknown:,} rows with unrecognized member_casual labels")
        return df, n_unknown, n_unknown
    return df, n_unknown, 0


# -----------------------------
# Derived fields
# -----------------------------
def add_calendar_fields(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df["date"] = df["started_at"].dt.normalize()
    df["month"] = df["date"].dt.strftime("%m")
    df["day"] = df["date"].dt.strftime("%d")
    df["year"] = df["date"].dt.strftime("%Y")
    df["day_of_week"] = df["date"].dt.day_name().astype(WEEKDAY_DTYPE)
    return df


def add_ride_length(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df["ride_length"] = (df["ended_at"] - df["started_at"]).dt.total_seconds()
    return df


# -----------------------------
# Filtering
# -----------------------------
def filter_invalid_trips(
    df: pd.DataFrame, maintenance_station: str = MAINTENANCE_STATION
) -> Tuple[pd.DataFrame, int, int]:
    """
    Keep rides with ride_length > 0 that did not start at the maintenance station.

    Returns (kept, bad_duration, maintenance). A missing duration counts as bad;
    maintenance only counts rows that had a valid duration, so the two add up
    to the rows removed.
    """
    good_duration = df["ride_length"] > 0
    at_hq = df["start_station_name"] == maintenance_station

    bad_duration = int((~good_duration).sum())
    maintenance = int((good_duration & at_hq).sum())

    kept = df[good_duration & ~at_hq].reset_index(drop=True)

    if bad_duration:
        logger.warning(f"Dropped {bad_duration:,} rides with non-positive or missing ride_length")
    if maintenance:
        logger.warning(f"Dropped {maintenance:,} rides starting at maintenance station {maintenance_station!r}")
    return kept, bad_duration, maintenance


def clean_trips(
    df: pd.DataFrame,
    on_unknown: str = "error",
    maintenance_station: str = MAINTENANCE_STATION,
) -> Tuple[pd.DataFrame, CleaningReport]:
    report = CleaningReport(rows_in=len(df))

    df, report.unknown_labels, report.unknown_labels_dropped = normalize_segment_labels(df, on_unknown)
    df = add_calendar_fields(df)
    df = add_ride_length(df)
    df, report.bad_duration, report.maintenance = filter_invalid_trips(df, maintenance_station)

    report.rows_out = len(df)
    logger.info(
        f"Cleaned trips rows={report.rows_out:,} of {report.rows_in:,} "
        f"(bad_duration={report.bad_duration:,}, maintenance={report.maintenance:,}, "
        f"unknown_labels_dropped={report.unknown_labels_dropped:,})"
    )
    return df, report


def drop_summary(report: CleaningReport) -> List[Tuple[str, int]]:
    """(reason, rows) pairs for the highlights report."""
    return [
        ("non-positive or missing ride_length", report.bad_duration),
        ("maintenance station", report.maintenance),
        ("unrecognized rider label", report.unknown_labels_dropped),
    ]
