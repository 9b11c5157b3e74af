"""
reporting.py

Outputs written from the segment x weekday summary:
  - summary_data.csv (member_casual, day_of_week, number_of_rides, average_duration)
  - rides_by_weekday.png
  - average_duration_by_weekday.png
  - summary_highlights.md (descriptive statistics + cleaning counts)
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from divvy_segments.analysis import SUMMARY_COLUMNS, order_weekdays
from divvy_segments.cleaning import SEGMENTS, WEEKDAY_ORDER, CleaningReport, drop_summary
from divvy_segments.logging_utils import logger

PathLike = Union[str, Path]

SEGMENT_PALETTE = {"casual": "#f28e2b", "member": "#4e79a7"}


# -----------------------------
# Charts
# -----------------------------
def _plot_weekday_bars(summary: pd.DataFrame, value_col: str, ylabel: str, title: str, path: PathLike) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = summary.copy()
    data["day_of_week"] = data["day_of_week"].astype(str)
    hue_order = [s for s in SEGMENTS if s in set(data["member_casual"])]
    hue_order += sorted(set(data["member_casual"]) - set(hue_order))
    palette = {s: SEGMENT_PALETTE.get(s, "#bab0ac") for s in hue_order}

    fig, ax = plt.subplots(figsize=(9, 5))
    try:
        sns.barplot(
            data=data,
            x="day_of_week",
            y=value_col,
            hue="member_casual",
            order=WEEKDAY_ORDER,
            hue_order=hue_order,
            palette=palette,
            errorbar=None,
            ax=ax,
        )
        ax.set_xlabel("Day of week")
        ax.set_ylabel(ylabel)
        ax.set_title(title)
        ax.legend(title="Rider type")
        fig.tight_layout()
        fig.savefig(path, dpi=120)
    finally:
        plt.close(fig)

    logger.info(f"Saved -> {path}")
    return path


def plot_rides_by_weekday(summary: pd.DataFrame, path: PathLike) -> Path:
    return _plot_weekday_bars(summary, "number_of_rides", "Number of rides", "Rides per weekday by rider type", path)


def plot_average_duration_by_weekday(summary: pd.DataFrame, path: PathLike) -> Path:
    return _plot_weekday_bars(
        summary, "average_duration", "Average ride length (s)", "Average ride length per weekday by rider type", path
    )


# -----------------------------
# Summary CSV
# -----------------------------
def export_summary(summary: pd.DataFrame, path: PathLike) -> Path:
    """Write the summary CSV, replacing any file already at path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    summary[SUMMARY_COLUMNS].to_csv(path, index=False)
    logger.info(f"Saved -> {path} rows={len(summary):,}")
    return path


def read_summary(path: PathLike) -> pd.DataFrame:
    df = pd.read_csv(path)
    missing = [c for c in SUMMARY_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Not a summary file, missing columns {missing}: {path}")
    return order_weekdays(df[SUMMARY_COLUMNS])


# -----------------------------
# Highlights writer (terminal + markdown file)
# -----------------------------
def _fmt_seconds(v: float) -> str:
    if pd.isna(v):
        return "NA"
    return f"{float(v):,.1f}s"


def build_highlights_markdown(
    overall: pd.Series,
    by_segment: pd.DataFrame,
    summary: pd.DataFrame,
    report: Optional[CleaningReport] = None,
    plain: bool = False,
) -> List[str]:
    """Markdown lines for summary_highlights.md; plain=True drops heading and bold markup for the terminal."""

    def heading(level: int, text: str) -> str:
        return text if plain else "#" * level + " " + text

    def bold(text: object) -> str:
        return str(text) if plain else f"**{text}**"

    lines: List[str] = []
    lines.append(heading(1, "Ride length: member vs casual"))
    lines.append("")

    if report is not None:
        lines.append(heading(2, "Cleaning"))
        lines.append(f"- Rows combined: {report.rows_in:,}")
        for reason, n in drop_summary(report):
            if n:
                lines.append(f"- Dropped ({reason}): {n:,}")
        if report.unknown_labels and not report.unknown_labels_dropped:
            lines.append(f"- Unrecognized rider labels kept: {report.unknown_labels:,}")
        lines.append(f"- Rows analysed: {report.rows_out:,}")
        lines.append("")

    lines.append(heading(2, "All rides"))
    for name, v in overall.items():
        lines.append(f"- {bold(name)}: {_fmt_seconds(v)}")
    lines.append("")

    lines.append(heading(2, "By rider type"))
    lines.append("")
    lines.append("| member_casual | " + " | ".join(by_segment.columns) + " |")
    lines.append("|---" * (len(by_segment.columns) + 1) + "|")
    for seg, r in by_segment.iterrows():
        lines.append(f"| {seg} | " + " | ".join(_fmt_seconds(v) for v in r.values) + " |")
    lines.append("")

    lines.append(heading(2, "Rides and average ride length by weekday"))
    for seg in summary["member_casual"].drop_duplicates():
        sub = summary[summary["member_casual"] == seg]
        total = sub["number_of_rides"].sum()
        lines.append(heading(3, str(seg)))
        for _, r in sub.iterrows():
            pct = (float(r["number_of_rides"]) / total * 100.0) if total else 0.0
            lines.append(
                f"- {bold(r['day_of_week'])}: {int(r['number_of_rides']):,} rides ({pct:.2f}% of {seg}), "
                f"avg {_fmt_seconds(r['average_duration'])}"
            )
        lines.append("")

    return lines


def write_lines(path: PathLike, lines: List[str]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.info(f"Saved -> {path}")
    return path


def print_lines(lines: List[str]) -> None:
    for ln in lines:
        print(ln)
