from __future__ import annotations

from typing import Any, Dict, Optional

import pandas as pd

from rail_core.data import records_frame, round_half_up
from rail_core.processing import format_delay_time, generate_delay_distribution, get_route_train_number
from rail_core.statistics import calculate_statistics

TOP_LISTED = 6


def _incidents_per_day(total_records: int, start: Optional[str], end: Optional[str]) -> Optional[int]:
    first = pd.to_datetime(start, errors="coerce") if start else pd.NaT
    last = pd.to_datetime(end, errors="coerce") if end else pd.NaT
    if pd.isna(first) or pd.isna(last):
        return None
    days = (last - first).total_seconds() / 86400
    if days <= 0:
        return int(total_records)
    return int(round_half_up(total_records / days))


def compute_overview(ctx: Dict[str, Any]) -> Dict[str, Any]:
    df = records_frame(ctx)
    raw_stats = ctx.get("statistics") or {}
    # Keys present in the export win; missing ones come from the records.
    stats: Dict[str, Any] = {**calculate_statistics(df, raw_stats), **raw_stats}

    total_delay_hours = int(round_half_up(df["delay_minutes"].sum() / 60)) if not df.empty else 0

    worst = None
    if not df.empty:
        row = df.loc[df["delay_minutes"].idxmax()]
        worst = {
            "train_number": str(row["train_number"]),
            "route": str(row["route"]),
            "route_train_number": get_route_train_number(df, row["route"]),
            "timestamp": str(row["timestamp"]),
            "date": str(row["date"]),
            "delay_minutes": float(row["delay_minutes"]),
            "delay_text": format_delay_time(row["delay_minutes"]),
        }

    date_range = stats.get("date_range") or {}
    delay_stats = stats.get("delay_stats") or {}
    total_records = int(stats.get("total_records", len(df)) or 0)

    routes = [
        {**r, "route_train_number": get_route_train_number(df, r.get("route", ""))}
        for r in (stats.get("most_delayed_routes") or [])[:TOP_LISTED]
    ]
    trains = [
        {"rank": idx + 1, **t}
        for idx, t in enumerate((stats.get("most_delayed_trains") or [])[:TOP_LISTED])
    ]

    return {
        "kpis": {
            "total_records": total_records,
            "unique_trains": stats.get("unique_trains"),
            "unique_routes": stats.get("unique_routes"),
            "average_delay": delay_stats.get("average_minutes"),
            "maximum_delay": delay_stats.get("maximum_minutes"),
            "maximum_delay_text": (
                format_delay_time(delay_stats["maximum_minutes"])
                if delay_stats.get("maximum_minutes") is not None
                else None
            ),
        },
        "date_range": {"start": date_range.get("start"), "end": date_range.get("end")},
        "impact": {
            "total_delay_hours": total_delay_hours,
            "average_incidents_per_day": _incidents_per_day(total_records, date_range.get("start"), date_range.get("end")),
        },
        "distribution": generate_delay_distribution(df),
        "worst_delay": worst,
        "most_delayed_routes": routes,
        "most_delayed_trains": trains,
    }
