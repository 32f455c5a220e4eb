from __future__ import annotations

from typing import Any, Dict

from rail_core.data import records_frame
from rail_core.processing import (
    generate_chart_data,
    generate_daily_delay_data,
    generate_delay_distribution,
    generate_hourly_delay_data,
    generate_route_delay_data,
)

RECENT_DAYS = 30


def compute_analytics(ctx: Dict[str, Any], *, route_limit: int = 20) -> Dict[str, Any]:
    df = records_frame(ctx)
    daily = generate_chart_data(df)
    return {
        "daily_trend": daily,
        "recent_trend": daily[-RECENT_DAYS:],
        "hourly": generate_hourly_delay_data(df),
        "day_of_week": generate_daily_delay_data(df),
        "distribution": generate_delay_distribution(df),
        "routes": generate_route_delay_data(df, limit=max(1, int(route_limit))),
    }
