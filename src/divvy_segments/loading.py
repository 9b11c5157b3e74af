"""
loading.py

Read one quarterly Divvy trip export into a DataFrame.

Accepted inputs:
  - Divvy_Trips_YYYY_Qn.csv
  - Divvy_Trips_YYYY_Qn.zip (first CSV member is read)

Timestamp columns of either schema generation are parsed on read; values that
cannot be parsed become NaT and are dropped later as invalid durations.
"""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import List, Union

import pandas as pd

from divvy_segments.errors import DataLoadError
from divvy_segments.logging_utils import logger

TIMESTAMP_COLUMNS = ["start_time", "end_time", "started_at", "ended_at"]

PathLike = Union[str, Path]


def pick_csv(names: List[str]) -> str:
    csvs = [n for n in names if n.lower().endswith(".csv") and "__macosx" not in n.lower()]
    if not csvs:
        raise ValueError("No CSV found inside zip")
    # usually only one; pick the first stable choice
    return sorted(csvs)[0]


def ensure_datetime_series(s: pd.Series) -> pd.Series:
    if pd.api.types.is_datetime64_any_dtype(s):
        return s
    return pd.to_datetime(s, errors="coerce")


def _read_frame(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == ".zip":
        with zipfile.ZipFile(path, "r") as z:
            csv_name = pick_csv(z.namelist())
            with z.open(csv_name) as f:
                return pd.read_csv(f, low_memory=False)
    return pd.read_csv(path, low_memory=False)


def read_trips(path: PathLike) -> pd.DataFrame:
    """
    Load a trip file, letting pandas infer column types from content.

    Raises DataLoadError when the file is missing or its content is malformed
    (inconsistent field counts, empty file, bad zip) or cannot be read (a
    directory, no permission).
    """
    path = Path(path)
    if not path.exists():
        raise DataLoadError(f"Input file not found: {path}")

    try:
        df = _read_frame(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, zipfile.BadZipFile, ValueError, OSError) as e:
        raise DataLoadError(f"Could not read {path}: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    for col in TIMESTAMP_COLUMNS:
        if col in df.columns:
            df[col] = ensure_datetime_series(df[col])

    logger.info(f"Loaded {path.name} rows={len(df):,} cols={len(df.columns)}")
    return df
