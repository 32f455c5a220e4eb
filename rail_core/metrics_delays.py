from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from rail_core.data import records_frame, records_to_dicts
from rail_core.filters import FilterOptions, without_pagination
from rail_core.processing import (
    format_date,
    format_delay_time,
    format_time,
    get_delay_badge_class,
    get_unique_routes,
    get_unique_train_numbers,
    paginate_records,
    process_records,
    total_pages,
)

CSV_COLUMNS = {
    "date": "Date",
    "time": "Time",
    "train_number": "Train Number",
    "route": "Route",
    "origin": "Origin",
    "destination": "Destination",
    "delay_minutes": "Delay (minutes)",
    "delay_display": "Delay Display",
}


def _table_row(record: Dict[str, Any]) -> Dict[str, Any]:
    delay = record.get("delay_minutes") or 0
    row = dict(record)
    row["delay_text"] = format_delay_time(delay)
    row["badge_class"] = get_delay_badge_class(delay)
    row["time_display"] = format_time(record.get("time") or "")
    try:
        row["date_display"] = format_date(record.get("date") or "")
    except ValueError:
        row["date_display"] = record.get("date") or ""
    return row


def compute_delays_table(filters: FilterOptions, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df = records_frame(ctx)
    filtered = process_records(df, without_pagination(filters))
    page = paginate_records(filtered, filters)
    rows: List[Dict[str, Any]] = [_table_row(r) for r in records_to_dicts(page)]
    return {
        "filters": asdict(filters),
        "page": filters.page or 1,
        "page_size": filters.page_size,
        "total_records": int(len(df)),
        "total_filtered": int(len(filtered)),
        "total_pages": total_pages(len(filtered), filters.page_size),
        "records": rows,
        "options": {"trains": get_unique_train_numbers(df), "routes": get_unique_routes(df)},
    }


def export_delays_csv(filters: FilterOptions, ctx: Dict[str, Any]) -> str:
    """CSV of every record matching `filters`, ignoring pagination."""
    df = records_frame(ctx)
    filtered = process_records(df, without_pagination(filters))
    if filtered.empty:
        export_df = pd.DataFrame(columns=list(CSV_COLUMNS.values()))
    else:
        export_df = filtered[list(CSV_COLUMNS)].rename(columns=CSV_COLUMNS)
    return export_df.to_csv(index=False)
