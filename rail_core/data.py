from __future__ import annotations

import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from rail_core.config import get_settings

logger = logging.getLogger(__name__)

RECORD_COLUMNS = [
    "id",
    "timestamp",
    "date",
    "time",
    "hour",
    "day_of_week",
    "raw_train_info",
    "train_number",
    "route",
    "origin",
    "destination",
    "delay_minutes",
    "delay_hours",
    "delay_display",
]
TEXT_COLUMNS = [
    "timestamp",
    "date",
    "time",
    "raw_train_info",
    "train_number",
    "route",
    "origin",
    "destination",
    "delay_display",
]
NUMERIC_COLUMNS = ["id", "hour", "day_of_week", "delay_minutes", "delay_hours"]


class DataLoadError(Exception):
    """The delay export could not be read; `message` is safe to show to a user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def file_signature(path: Path) -> Tuple[str, float]:
    try:
        return str(path.resolve()), path.stat().st_mtime
    except FileNotFoundError as exc:
        raise DataLoadError(f"Failed to load data: {path.name} not found") from exc
    except OSError as exc:
        raise DataLoadError(f"Failed to load data: {exc.strerror or exc}") from exc


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col].astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "<NA>": pd.NA})
            df[col] = series.fillna("")
    return df


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    """Decimal ROUND_HALF_UP: halves move away from zero, so -2.5 -> -3."""
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def empty_records_frame() -> pd.DataFrame:
    return pd.DataFrame({col: pd.Series(dtype=object) for col in RECORD_COLUMNS})


def normalize_records(df: pd.DataFrame) -> Tuple[pd.DataFrame, int]:
    """Coerce raw export rows into the record schema.

    Returns the cleaned frame and the number of rows dropped because they had
    no timestamp or no numeric delay.
    """
    if df.empty:
        return empty_records_frame(), 0

    df = df.copy()
    for col in RECORD_COLUMNS:
        if col not in df.columns:
            df[col] = None
    df = coerce_str_safe(df, TEXT_COLUMNS)
    df = numericize(df, NUMERIC_COLUMNS)

    valid = df["timestamp"].ne("") & df["delay_minutes"].notna()
    removed = int((~valid).sum())
    if removed:
        logger.warning("Dropped %d records without a timestamp or numeric delay", removed)
    df = df[valid].reset_index(drop=True)

    missing_date = df["date"].eq("")
    df.loc[missing_date, "date"] = df.loc[missing_date, "timestamp"].str.slice(0, 10)
    missing_time = df["time"].eq("")
    df.loc[missing_time, "time"] = df.loc[missing_time, "timestamp"].str.slice(11, 19)

    df["hour"] = df["hour"].fillna(pd.to_numeric(df["time"].str.slice(0, 2), errors="coerce"))
    df["day_of_week"] = df["day_of_week"].fillna(pd.to_datetime(df["date"], errors="coerce").dt.dayofweek)
    df["delay_hours"] = df["delay_hours"].fillna(df["delay_minutes"] / 60)
    df["hour"] = df["hour"].round().astype("Int64")
    df["day_of_week"] = df["day_of_week"].round().astype("Int64")
    df["id"] = df["id"].astype("Int64") if df["id"].dropna().mod(1).eq(0).all() else df["id"]

    return df[RECORD_COLUMNS], removed


def records_to_dicts(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    return df.astype(object).where(df.notna(), None).to_dict(orient="records")


def read_export(path: Path) -> Dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DataLoadError(f"Failed to load data: {path.name} not found") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise DataLoadError(f"Failed to load data: {exc}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DataLoadError(f"Failed to load data: invalid JSON ({exc.msg} at line {exc.lineno})") from exc

    if not isinstance(data, dict):
        raise DataLoadError("Failed to load data: export must be a JSON object")
    if not isinstance(data.get("records"), list):
        raise DataLoadError("Failed to load data: export has no records list")
    for block in ("metadata", "statistics"):
        if data.get(block) is not None and not isinstance(data[block], dict):
            raise DataLoadError(f"Failed to load data: {block} must be a JSON object")
    return data


# ---------------- Public API ----------------
@lru_cache(maxsize=4)
def _load_train_data_cached(file_sig: Tuple[str, float]) -> Dict[str, object]:
    path = Path(file_sig[0])
    data = read_export(path)
    raw_records = data["records"]
    rows = [r for r in raw_records if isinstance(r, dict)]
    records, removed = normalize_records(pd.DataFrame.from_records(rows))
    removed += len(raw_records) - len(rows)
    logger.info("Loaded %d delay records from %s", len(records), path.name)

    metadata = data.get("metadata")
    statistics = data.get("statistics")
    return {
        "path": str(path),
        "metadata": metadata if isinstance(metadata, dict) else {},
        "statistics": statistics if isinstance(statistics, dict) else {},
        "records": records,
        "dq_removed_rows": removed,
    }


def load_train_data(path: Optional[Path | str] = None) -> Dict[str, object]:
    target = Path(path) if path is not None else get_settings().data_file
    return _load_train_data_cached(file_signature(target))


def clear_data_cache() -> None:
    _load_train_data_cached.cache_clear()


def records_frame(ctx: Dict[str, object]) -> pd.DataFrame:
    records = ctx.get("records")
    if not isinstance(records, pd.DataFrame):
        return empty_records_frame()
    return records.copy()
