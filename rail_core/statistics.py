from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

from rail_core.data import round_half_up

TOP_N = 10


def _date_range(df: pd.DataFrame, original_stats: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    carried = original_stats.get("date_range") if isinstance(original_stats, dict) else None
    if isinstance(carried, dict):
        return carried
    dates = df["date"].astype(str) if not df.empty else pd.Series(dtype=str)
    dates = dates[dates.ne("")]
    if dates.empty:
        return {"start": None, "end": None}
    return {"start": str(dates.min()), "end": str(dates.max())}


def _most_delayed(df: pd.DataFrame, key: str, ndigits: int) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    grouped = (
        df.groupby(key, sort=False)["delay_minutes"]
        .agg(avg_delay_minutes="mean", total_records="count", max_delay="max")
        .reset_index()
    )
    grouped["avg_delay_minutes"] = grouped["avg_delay_minutes"].apply(lambda v: round_half_up(v, ndigits))
    # Max is seeded at zero, so all-negative groups report 0.
    grouped["max_delay"] = grouped["max_delay"].clip(lower=0)
    top = grouped.sort_values("avg_delay_minutes", ascending=False, kind="mergesort").head(TOP_N)
    if ndigits == 0:
        top["avg_delay_minutes"] = top["avg_delay_minutes"].astype(int)
    return [
        {
            key: str(r[key]),
            "avg_delay_minutes": r["avg_delay_minutes"],
            "total_records": int(r["total_records"]),
            "max_delay": float(r["max_delay"]),
        }
        for r in top.to_dict(orient="records")
    ]


def calculate_statistics(df: pd.DataFrame, original_stats: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Summary block written into the export's `statistics` key.

    Train averages are whole minutes, route averages one decimal; both lists
    hold the ten highest averages.
    """
    delays = df["delay_minutes"] if not df.empty else pd.Series(dtype=float)
    if delays.empty:
        delay_stats = {"average_minutes": 0.0, "maximum_minutes": 0.0, "minimum_minutes": 0.0}
    else:
        delay_stats = {
            "average_minutes": round_half_up(delays.mean(), 1),
            "maximum_minutes": float(delays.max()),
            "minimum_minutes": float(delays.min()),
        }
    return {
        "total_records": int(len(df)),
        "unique_trains": int(df["train_number"].nunique()) if not df.empty else 0,
        "unique_routes": int(df["route"].nunique()) if not df.empty else 0,
        "date_range": _date_range(df, original_stats),
        "delay_stats": delay_stats,
        "most_delayed_trains": _most_delayed(df, "train_number", 0),
        "most_delayed_routes": _most_delayed(df, "route", 1),
    }
