"""
analysis.py

Descriptive statistics of ride_length over the cleaned trips, overall and per
rider segment, and the segment x weekday summary that gets exported.
"""

from __future__ import annotations

from itertools import product

import numpy as np
import pandas as pd

from divvy_segments.cleaning import SEGMENTS, WEEKDAY_DTYPE, WEEKDAY_ORDER
from divvy_segments.logging_utils import logger

STAT_NAMES = ["min", "q1", "median", "mean", "q3", "max"]
SUMMARY_KEYS = ["member_casual", "day_of_week"]
SUMMARY_COLUMNS = SUMMARY_KEYS + ["number_of_rides", "average_duration"]


def _q1(s: pd.Series) -> float:
    return s.quantile(0.25)


def _q3(s: pd.Series) -> float:
    return s.quantile(0.75)


def describe_durations(df: pd.DataFrame) -> pd.Series:
    """Five-number summary plus mean of ride_length, in seconds."""
    s = df["ride_length"]
    if s.empty:
        logger.warning("No rides left to describe; statistics are NaN")
    stats = pd.Series(
        {
            "min": s.min(),
            "q1": _q1(s),
            "median": s.median(),
            "mean": s.mean(),
            "q3": _q3(s),
            "max": s.max(),
        },
        dtype=float,
    )
    stats.name = "ride_length"
    return stats


def describe_by_segment(df: pd.DataFrame) -> pd.DataFrame:
    """Same statistics as describe_durations, one row per member_casual value."""
    out = (
        df.groupby("member_casual", sort=True)["ride_length"]
        .agg(min="min", q1=_q1, median="median", mean="mean", q3=_q3, max="max")
        .astype(float)
    )
    return out[STAT_NAMES]


def order_weekdays(df: pd.DataFrame) -> pd.DataFrame:
    """Make day_of_week an ordered Sunday..Saturday categorical."""
    if isinstance(df["day_of_week"].dtype, pd.CategoricalDtype) and df["day_of_week"].dtype == WEEKDAY_DTYPE:
        return df
    df = df.copy()
    df["day_of_week"] = df["day_of_week"].astype(str).astype(WEEKDAY_DTYPE)
    return df


def summarize_by_segment_weekday(df: pd.DataFrame, zero_fill: bool = False) -> pd.DataFrame:
    """
    Ride count and mean ride_length per (member_casual, day_of_week).

    Only observed pairs are returned unless zero_fill is set, in which case
    every segment/weekday pair appears with number_of_rides=0 and an empty
    average_duration where there were no rides.
    """
    df = order_weekdays(df)
    out = (
        df.groupby(SUMMARY_KEYS, observed=True, sort=True)
        .agg(number_of_rides=("ride_length", "size"), average_duration=("ride_length", "mean"))
        .reset_index()
    )

    if zero_fill:
        segments = sorted(set(SEGMENTS) | set(df["member_casual"].dropna().unique()))
        full = pd.DataFrame(list(product(segments, WEEKDAY_ORDER)), columns=SUMMARY_KEYS)
        full["day_of_week"] = full["day_of_week"].astype(WEEKDAY_DTYPE)
        out = full.merge(out, on=SUMMARY_KEYS, how="left")
        filled = int(out["number_of_rides"].isna().sum())
        out["number_of_rides"] = out["number_of_rides"].fillna(0).astype(np.int64)
        if filled:
            logger.info(f"Zero-filled {filled} segment/weekday pairs with no rides")

    out = out.sort_values(SUMMARY_KEYS).reset_index(drop=True)
    out["number_of_rides"] = out["number_of_rides"].astype(np.int64)
    return out[SUMMARY_COLUMNS]
