from __future__ import annotations

import math
from datetime import date
from typing import Any, Dict, List, Literal, Optional

import pandas as pd

from rail_core.data import empty_records_frame, records_to_dicts, round_half_up
from rail_core.filters import FilterOptions

SearchScope = Literal["all", "trains", "routes"]

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

DELAY_CATEGORIES = {
    "low": {"range": "0-15 min", "color": "#22c55e"},
    "medium": {"range": "16-60 min", "color": "#f59e0b"},
    "high": {"range": "61-180 min", "color": "#ef4444"},
    "extreme": {"range": "180+ min", "color": "#7c2d12"},
}


def _avg_1dp(values: pd.Series) -> float:
    if values.empty:
        return 0.0
    return round_half_up(values.mean(), 1) or 0.0


def _lower(df: pd.DataFrame, col: str) -> pd.Series:
    return df[col].astype(str).str.lower()


# ---------------- Record pipeline ----------------
def search_mask(df: pd.DataFrame, query: str, scope: SearchScope = "all") -> pd.Series:
    q = (query or "").strip().lower()
    if not q or df.empty:
        return pd.Series(True, index=df.index)
    match_train = _lower(df, "train_number").str.contains(q, regex=False, na=False)
    match_route = (
        _lower(df, "route").str.contains(q, regex=False, na=False)
        | _lower(df, "origin").str.contains(q, regex=False, na=False)
        | _lower(df, "destination").str.contains(q, regex=False, na=False)
    )
    if scope == "trains":
        return match_train
    if scope == "routes":
        return match_route
    return match_train | match_route


def filter_by_date_range(df: pd.DataFrame, start: Optional[str], end: Optional[str]) -> pd.DataFrame:
    if df.empty or not (start or end):
        return df
    record_dates = pd.to_datetime(df["date"], errors="coerce")
    mask = pd.Series(True, index=df.index)
    lower = pd.to_datetime(start, errors="coerce") if start else pd.NaT
    upper = pd.to_datetime(end, errors="coerce") if end else pd.NaT
    if pd.notna(lower):
        mask &= record_dates >= lower
    if pd.notna(upper):
        mask &= record_dates <= upper
    return df[mask]


def filter_records(df: pd.DataFrame, options: Optional[FilterOptions] = None) -> pd.DataFrame:
    options = options or FilterOptions()
    filtered = df.copy()

    if options.date_range is not None:
        filtered = filter_by_date_range(filtered, options.date_range.start, options.date_range.end)

    if options.train_numbers:
        filtered = filtered[filtered["train_number"].isin(set(options.train_numbers))]

    if options.routes:
        mask = pd.Series(False, index=filtered.index)
        for route in options.routes:
            mask |= filtered["route"].astype(str).str.contains(route, regex=False, na=False)
        filtered = filtered[mask]

    if options.min_delay is not None:
        filtered = filtered[filtered["delay_minutes"] >= options.min_delay]
    if options.max_delay is not None:
        filtered = filtered[filtered["delay_minutes"] <= options.max_delay]

    if options.search_query and options.search_query.strip():
        filtered = filtered[search_mask(filtered, options.search_query)]

    return filtered


def sort_records(df: pd.DataFrame, options: Optional[FilterOptions] = None) -> pd.DataFrame:
    if options is None or not options.sort_by or options.sort_by not in df.columns:
        return df
    col = options.sort_by
    ascending = options.sort_direction != "desc"
    if pd.api.types.is_numeric_dtype(df[col]):
        return df.sort_values(col, ascending=ascending, kind="mergesort")
    return df.sort_values(col, ascending=ascending, kind="mergesort", key=lambda s: s.astype(str).str.lower())


def paginate_records(df: pd.DataFrame, options: Optional[FilterOptions] = None) -> pd.DataFrame:
    if options is None or not options.page or not options.page_size:
        return df
    start = (options.page - 1) * options.page_size
    return df.iloc[start : start + options.page_size]


def process_records(df: pd.DataFrame, options: Optional[FilterOptions] = None) -> pd.DataFrame:
    processed = filter_records(df, options)
    processed = sort_records(processed, options)
    if options is not None and options.page and options.page_size:
        processed = paginate_records(processed, options)
    return processed


def total_pages(count: int, page_size: Optional[int]) -> int:
    if not page_size:
        return 1
    return math.ceil(count / page_size)


# ---------------- Groupings ----------------
def generate_chart_data(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    grouped = (
        df.groupby("date", sort=True)["delay_minutes"]
        .agg(average_delay="mean", total_trains="count", max_delay="max")
        .reset_index()
    )
    return [
        {
            "date": str(r.date),
            "average_delay": round_half_up(r.average_delay, 1),
            "total_trains": int(r.total_trains),
            "max_delay": float(r.max_delay),
        }
        for r in grouped.itertuples(index=False)
    ]


def _bucketed(df: pd.DataFrame, col: str, buckets: range) -> pd.DataFrame:
    base = df.dropna(subset=[col]) if not df.empty else df
    if base.empty:
        stats = pd.DataFrame({"mean": pd.Series(dtype=float), "count": pd.Series(dtype=int)})
    else:
        stats = base.groupby(base[col].astype(int))["delay_minutes"].agg(["mean", "count"])
    stats = stats.reindex(list(buckets))
    stats["mean"] = stats["mean"].fillna(0.0)
    stats["count"] = stats["count"].fillna(0).astype(int)
    return stats


def generate_hourly_delay_data(df: pd.DataFrame) -> List[Dict[str, Any]]:
    stats = _bucketed(df, "hour", range(24))
    return [
        {"hour": int(hour), "average_delay": round_half_up(row["mean"], 1), "total_records": int(row["count"])}
        for hour, row in stats.iterrows()
    ]


def generate_daily_delay_data(df: pd.DataFrame) -> List[Dict[str, Any]]:
    stats = _bucketed(df, "day_of_week", range(7))
    return [
        {
            "day_of_week": int(day),
            "day_name": DAY_NAMES[int(day)],
            "average_delay": round_half_up(row["mean"], 1),
            "total_records": int(row["count"]),
        }
        for day, row in stats.iterrows()
    ]


def route_delay_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Per-route average/count/max in first-seen route order."""
    if df.empty:
        return pd.DataFrame(columns=["route", "average_delay", "total_records", "max_delay"])
    grouped = (
        df.groupby("route", sort=False)["delay_minutes"]
        .agg(average_delay="mean", total_records="count", max_delay="max")
        .reset_index()
    )
    grouped["average_delay"] = grouped["average_delay"].apply(lambda v: round_half_up(v, 1))
    grouped["total_records"] = grouped["total_records"].astype(int)
    return grouped


def generate_route_delay_data(df: pd.DataFrame, limit: int = 20) -> List[Dict[str, Any]]:
    grouped = route_delay_frame(df)
    if grouped.empty:
        return []
    top = grouped.sort_values("average_delay", ascending=False, kind="mergesort").head(limit)
    return top.to_dict(orient="records")


def get_delay_category(delay_minutes: float) -> str:
    rounded = round_half_up(delay_minutes, 1) or 0.0
    if rounded <= 15:
        return "low"
    if rounded <= 60:
        return "medium"
    if rounded <= 180:
        return "high"
    return "extreme"


def generate_delay_distribution(df: pd.DataFrame) -> List[Dict[str, Any]]:
    counts = {name: 0 for name in DELAY_CATEGORIES}
    if not df.empty:
        for name, count in df["delay_minutes"].apply(get_delay_category).value_counts().items():
            counts[name] = int(count)
    total = len(df)
    return [
        {
            "category": name,
            "range": meta["range"],
            "count": counts[name],
            "percentage": round_half_up(counts[name] / total * 100, 1) if total > 0 else 0,
            "color": meta["color"],
        }
        for name, meta in DELAY_CATEGORIES.items()
    ]


def get_unique_train_numbers(df: pd.DataFrame) -> List[str]:
    if df.empty:
        return []
    return sorted(df["train_number"].astype(str).unique().tolist())


def get_unique_routes(df: pd.DataFrame) -> List[str]:
    if df.empty:
        return []
    return sorted(df["route"].astype(str).unique().tolist())


def get_route_train_number(df: pd.DataFrame, route_name: str) -> str:
    if df.empty:
        return ""
    trains = df.loc[df["route"] == route_name, "train_number"]
    if trains.empty:
        return ""
    counts = trains.groupby(trains, sort=False).size()
    return str(counts.idxmax())


def generate_monthly_stats(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    dates = pd.to_datetime(df["date"], errors="coerce")
    base = df.assign(year=dates.dt.year, month=dates.dt.month).dropna(subset=["year", "month"])
    if base.empty:
        return []
    grouped = (
        base.groupby(["year", "month"], sort=True)["delay_minutes"]
        .agg(average_delay="mean", total_incidents="count", max_delay="max")
        .reset_index()
    )
    out: List[Dict[str, Any]] = []
    for r in grouped.itertuples(index=False):
        year, month = int(r.year), int(r.month)
        name = MONTH_NAMES[month - 1]
        out.append(
            {
                "month": name,
                "year": year,
                "month_year": f"{name} {year}",
                "average_delay": round_half_up(r.average_delay, 1),
                "total_incidents": int(r.total_incidents),
                "max_delay": float(r.max_delay),
            }
        )
    return out


def generate_route_detail_data(df: pd.DataFrame, route_name: str) -> Dict[str, Any]:
    route_records = df[df["route"] == route_name] if not df.empty else empty_records_frame()
    if route_records.empty:
        return {
            "route": route_name,
            "total_records": 0,
            "average_delay": 0,
            "max_delay": 0,
            "min_delay": 0,
            "records": [],
            "monthly_stats": [],
            "daily_stats": [],
        }
    delays = route_records["delay_minutes"]
    return {
        "route": route_name,
        "total_records": int(len(route_records)),
        "average_delay": _avg_1dp(delays),
        "max_delay": float(delays.max()),
        "min_delay": float(delays.min()),
        "records": records_to_dicts(route_records),
        "monthly_stats": generate_monthly_stats(route_records),
        "daily_stats": generate_daily_delay_data(route_records),
    }


# ---------------- Formatting ----------------
def _trim_number(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_delay_time(minutes: float) -> str:
    rounded = round_half_up(minutes, 2) or 0.0
    if rounded < 0:
        # Early arrivals: format the magnitude and prefix the sign.
        return f"-{format_delay_time(-rounded)}"
    hours = math.floor(rounded / 60)
    mins = round_half_up(rounded % 60, 2) or 0.0
    if hours == 0:
        return f"{_trim_number(mins)}m"
    return f"{hours}h {_trim_number(mins)}m"


def format_date(date_string: str) -> str:
    parsed = date.fromisoformat(str(date_string)[:10])
    return f"{MONTH_NAMES[parsed.month - 1]} {parsed.day}, {parsed.year}"


def format_time(time_string: str) -> str:
    return str(time_string)[:5]


def get_delay_badge_class(delay_minutes: float) -> str:
    category = get_delay_category(delay_minutes)
    if category == "low":
        return "delay-badge delay-low"
    if category == "medium":
        return "delay-badge delay-medium"
    return "delay-badge delay-high"
