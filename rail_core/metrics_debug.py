from __future__ import annotations

from typing import Any, Dict

from rail_core.data import TEXT_COLUMNS, records_frame


def compute_debug(ctx: Dict[str, Any]) -> Dict[str, Any]:
    df = records_frame(ctx)
    payload: Dict[str, Any] = {
        "source": ctx.get("path"),
        "metadata": ctx.get("metadata") or {},
        "row_counts": {
            "records": int(len(df)),
            "declared_records": (ctx.get("metadata") or {}).get("total_records"),
        },
        "cleaning_checks": {
            "records_removed_invalid": int(ctx.get("dq_removed_rows", 0) or 0),
        },
        "date_coverage": {},
        "blank_counts": {},
        "unique_counts": {},
    }
    if df.empty:
        return payload

    dates = df["date"].astype(str)
    dates = dates[dates.ne("")]
    payload["date_coverage"] = {
        "min": str(dates.min()) if not dates.empty else None,
        "max": str(dates.max()) if not dates.empty else None,
        "days_present": int(dates.nunique()),
    }
    payload["blank_counts"] = {col: int(df[col].astype(str).eq("").sum()) for col in TEXT_COLUMNS}
    payload["unique_counts"] = {
        "trains": int(df["train_number"].nunique()),
        "routes": int(df["route"].nunique()),
        "origins": int(df["origin"].nunique()),
        "destinations": int(df["destination"].nunique()),
    }
    return payload
