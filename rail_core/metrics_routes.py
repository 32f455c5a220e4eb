from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from rail_core.data import records_frame
from rail_core.processing import generate_route_detail_data, get_route_train_number, route_delay_frame

RouteSortKey = Literal["average_delay", "total_records", "max_delay"]

MAX_ROUTES = 1000
CHART_ROUTES = 10
SHORT_ROUTE_LEN = 30


def _short_route(route: str) -> str:
    return route[:SHORT_ROUTE_LEN] + "..." if len(route) > SHORT_ROUTE_LEN else route


def compute_route_analysis(
    ctx: Dict[str, Any],
    *,
    q: str = "",
    sort_by: RouteSortKey = "average_delay",
    sort_direction: str = "desc",
    limit: int = 20,
) -> Dict[str, Any]:
    df = records_frame(ctx)
    all_routes = route_delay_frame(df)
    if all_routes.empty:
        return {
            "q": q,
            "sort_by": sort_by,
            "sort_direction": sort_direction,
            "summary": {"total_routes": 0, "average_delay_across_routes": 0.0, "worst_route": None, "best_route": None},
            "routes": [],
            "chart": [],
        }
    all_routes = all_routes.sort_values("average_delay", ascending=False, kind="mergesort").head(MAX_ROUTES)

    listed = all_routes
    query = (q or "").strip().lower()
    if query:
        listed = listed[listed["route"].astype(str).str.lower().str.contains(query, regex=False, na=False)]
    if sort_by not in ("average_delay", "total_records", "max_delay"):
        sort_by = "average_delay"
    listed = listed.sort_values(sort_by, ascending=sort_direction == "asc", kind="mergesort").head(max(1, int(limit)))

    chart = listed.sort_values("total_records", ascending=False, kind="mergesort").head(CHART_ROUTES).copy()
    chart["short_route"] = chart["route"].astype(str).apply(_short_route)

    worst = all_routes.iloc[0]
    best = all_routes.loc[all_routes["average_delay"].astype(float).idxmin()]

    def _route_card(row) -> Dict[str, Any]:
        return {
            "route": str(row["route"]),
            "average_delay": float(row["average_delay"]),
            "train_number": get_route_train_number(df, row["route"]),
        }

    return {
        "q": q,
        "sort_by": sort_by,
        "sort_direction": sort_direction,
        "summary": {
            "total_routes": int(len(all_routes)),
            "average_delay_across_routes": float(all_routes["average_delay"].astype(float).mean()),
            "worst_route": _route_card(worst),
            "best_route": _route_card(best),
        },
        "routes": [
            {**r, "train_number": get_route_train_number(df, r["route"])} for r in listed.to_dict(orient="records")
        ],
        "chart": chart.to_dict(orient="records"),
    }


def compute_route_detail(ctx: Dict[str, Any], route: str) -> Dict[str, Any]:
    df = records_frame(ctx)
    detail = generate_route_detail_data(df, route)
    monthly = detail["monthly_stats"]

    dates = sorted(str(r.get("date") or "") for r in detail["records"])
    summary = {
        "train_number": get_route_train_number(df, route),
        "start_date": dates[0] if dates else None,
        "end_date": dates[-1] if dates else None,
        # max/min return the first month on ties.
        "worst_month": max(monthly, key=lambda m: m["average_delay"]) if monthly else None,
        "best_month": min(monthly, key=lambda m: m["average_delay"]) if monthly else None,
    }
    return {**detail, "summary": summary}


def route_export_filename(route: str) -> str:
    return f"route-{re.sub(r'[^a-zA-Z0-9]', '_', route)}-statistics.json"


def route_export_payload(detail: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "route": detail["route"],
        "summary": {
            "total_records": detail["total_records"],
            "average_delay": detail["average_delay"],
            "max_delay": detail["max_delay"],
            "min_delay": detail["min_delay"],
        },
        "monthly_stats": detail["monthly_stats"],
        "exported_at": now.isoformat().replace("+00:00", "Z"),
    }
