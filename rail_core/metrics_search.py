from __future__ import annotations

import math
from typing import Any, Dict, List, Literal, Optional

import pandas as pd

from rail_core.data import records_frame, records_to_dicts, round_half_up
from rail_core.processing import (
    SearchScope,
    filter_by_date_range,
    format_delay_time,
    get_unique_routes,
    get_unique_train_numbers,
    search_mask,
)

SearchSort = Literal["relevance", "delay", "date"]

RESULT_LIMIT = 100
SUGGESTION_LIMIT = 5
SUGGESTION_MIN_CHARS = 2


def _suggestions(df: pd.DataFrame, query: str) -> List[Dict[str, str]]:
    if len(query) < SUGGESTION_MIN_CHARS:
        return []
    term = query.lower()
    trains = [t for t in get_unique_train_numbers(df) if term in t.lower()][:SUGGESTION_LIMIT]
    routes = [r for r in get_unique_routes(df) if term in r.lower()][:SUGGESTION_LIMIT]
    return [{"type": "train", "value": t} for t in trains] + [{"type": "route", "value": r} for r in routes]


def _sort_results(df: pd.DataFrame, query: str, sort_by: SearchSort) -> pd.DataFrame:
    if df.empty:
        return df
    if sort_by == "date":
        return df.sort_values(
            "timestamp",
            ascending=False,
            kind="mergesort",
            key=lambda s: pd.to_datetime(s, errors="coerce", utc=True),
        )
    if sort_by == "relevance" and query:
        exact = df["train_number"].astype(str).str.lower().eq(query.lower())
        ordered = df.assign(_exact=exact).sort_values(["_exact", "delay_minutes"], ascending=[False, False], kind="mergesort")
        return ordered.drop(columns=["_exact"])
    return df.sort_values("delay_minutes", ascending=False, kind="mergesort")


def _result_stats(df: pd.DataFrame) -> Optional[Dict[str, Any]]:
    if df.empty:
        return None
    delays = df["delay_minutes"]
    return {
        "total": int(len(df)),
        "average_delay": round_half_up(delays.mean(), 1),
        "max_delay": float(delays.max()),
        "min_delay": float(delays.min()),
        "unique_trains": int(df["train_number"].nunique()),
        "unique_routes": int(df["route"].nunique()),
    }


def compute_search(
    ctx: Dict[str, Any],
    *,
    q: str = "",
    category: SearchScope = "all",
    start: Optional[str] = None,
    end: Optional[str] = None,
    min_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    sort_by: SearchSort = "relevance",
    limit: int = RESULT_LIMIT,
) -> Dict[str, Any]:
    """Advanced search. Nothing is returned until a query, a date bound or a
    delay bound is given; an open delay bound defaults to 0 / unbounded."""
    df = records_frame(ctx)
    query = (q or "").strip()
    start = (start or "").strip() or None
    end = (end or "").strip() or None

    matches = df.iloc[0:0]
    has_criteria = bool(query or start or end or min_delay is not None or max_delay is not None)
    if has_criteria and not df.empty:
        matches = df[search_mask(df, query, category)] if query else df
        matches = filter_by_date_range(matches, start, end)
        if min_delay is not None or max_delay is not None:
            low = min_delay if min_delay is not None else 0
            high = max_delay if max_delay is not None else math.inf
            matches = matches[(matches["delay_minutes"] >= low) & (matches["delay_minutes"] <= high)]
        matches = _sort_results(matches, query, sort_by)

    results = matches.head(max(1, int(limit)))
    rows = records_to_dicts(results)
    for row in rows:
        row["delay_text"] = format_delay_time(row.get("delay_minutes") or 0)

    return {
        "q": query,
        "category": category,
        "sort_by": sort_by,
        "total_records": int(len(df)),
        "total_matches": int(len(matches)),
        "results": rows,
        "stats": _result_stats(results),
        "suggestions": _suggestions(df, query),
    }
