"""
schema.py

Bring the legacy (2019-style) Divvy export onto the current (2020-style)
column names so both quarters can be stacked.

Canonical columns:
  ride_id (text)
  rideable_type (text)
  started_at / ended_at (timestamp)
  start_station_name / start_station_id
  end_station_name / end_station_id
  member_casual (text)
"""

from __future__ import annotations

from typing import Dict, List

import numpy as np
import pandas as pd

from divvy_segments.errors import SchemaMismatchError
from divvy_segments.logging_utils import logger

LEGACY_RENAME_MAP: Dict[str, str] = {
    "trip_id": "ride_id",
    "bikeid": "rideable_type",
    "start_time": "started_at",
    "end_time": "ended_at",
    "from_station_name": "start_station_name",
    "from_station_id": "start_station_id",
    "to_station_name": "end_station_name",
    "to_station_id": "end_station_id",
    "usertype": "member_casual",
}

CANONICAL_COLUMNS: List[str] = list(LEGACY_RENAME_MAP.values())

# legacy ids are integers; current ids are strings
TEXT_COLUMNS = ["ride_id", "rideable_type"]


def dtype_family(s: pd.Series) -> str:
    """Coarse dtype class used to decide whether two columns can be stacked."""
    if pd.api.types.is_datetime64_any_dtype(s):
        # naive and tz-aware timestamps do not stack without coercion
        tz = s.dt.tz
        return "datetime" if tz is None else f"datetime[{tz}]"
    if pd.api.types.is_bool_dtype(s):
        return "bool"
    if pd.api.types.is_numeric_dtype(s):
        return "numeric"
    # object columns with missing values still count as text
    if pd.api.types.infer_dtype(s, skipna=True) in ("string", "empty"):
        return "text"
    return "object"


def to_text(s: pd.Series) -> pd.Series:
    """Cast ids to text. Integer ids read as float because of blanks stay "2167", not "2167.0"."""
    if pd.api.types.is_float_dtype(s):
        non_null = s.dropna()
        if (non_null == non_null.round()).all():
            s = s.astype("Int64")
    return s.map(lambda v: str(v) if pd.notna(v) else np.nan).astype(object)


def _require_columns(df: pd.DataFrame, required: List[str], label: str) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise SchemaMismatchError(
            f"{label} table is missing columns {missing}; columns seen: {list(df.columns)[:25]}"
        )


def unify_legacy_schema(df: pd.DataFrame) -> pd.DataFrame:
    """Rename legacy columns to the current names and cast the id columns to text."""
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]
    _require_columns(df, list(LEGACY_RENAME_MAP), "Legacy")

    df = df.rename(columns=LEGACY_RENAME_MAP)
    for col in TEXT_COLUMNS:
        df[col] = to_text(df[col])

    logger.info(f"Unified legacy schema: renamed {len(LEGACY_RENAME_MAP)} columns, cast {TEXT_COLUMNS} to text")
    return df


def check_current_schema(df: pd.DataFrame) -> pd.DataFrame:
    _require_columns(df, CANONICAL_COLUMNS, "Current")
    return df


def assert_alignable(legacy: pd.DataFrame, current: pd.DataFrame) -> None:
    """
    Fail if any canonical column has a different dtype family in the two tables.

    A column that is entirely null on one side carries no type information and
    is accepted.
    """
    _require_columns(legacy, CANONICAL_COLUMNS, "Legacy")
    _require_columns(current, CANONICAL_COLUMNS, "Current")

    mismatches = []
    for col in CANONICAL_COLUMNS:
        a, b = legacy[col], current[col]
        if a.isna().all() or b.isna().all():
            continue
        fa, fb = dtype_family(a), dtype_family(b)
        if fa != fb:
            mismatches.append(f"{col} ({fa} vs {fb})")

    if mismatches:
        raise SchemaMismatchError(
            "Cannot stack trip tables, column types differ: " + ", ".join(mismatches),
            stage="combine",
        )
